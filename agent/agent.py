import logging
import os
import random
import signal
import threading

import psutil
import requests

from agent.retry import RetryError, retry_backoff, retry_fixed
from controller.models import MetricsSample

# ================= CONFIG =================
CONTROLLER_URL = os.getenv("CONTROLLER_URL", "http://127.0.0.1:8080")
AGENT_COUNT = int(os.getenv("AGENT_COUNT", "3"))
AGENT_SOURCE = os.getenv("AGENT_SOURCE", "synthetic")
RETRY_STRATEGY = os.getenv("RETRY_STRATEGY", "backoff")
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_DELAY = float(os.getenv("RETRY_DELAY", "1.0"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "3"))
MIN_INTERVAL = float(os.getenv("MIN_INTERVAL", "1"))
MAX_INTERVAL = float(os.getenv("MAX_INTERVAL", "5"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)


# ================= METRICS =================
def generate_sample(rng=random) -> MetricsSample:
    return MetricsSample(
        cpu_usage=rng.random() * 100,
        memory_usage=rng.random() * 100,
        disk_usage=rng.random() * 100,
    )


def collect_host_sample() -> MetricsSample:
    return MetricsSample(
        cpu_usage=psutil.cpu_percent(interval=None),
        memory_usage=psutil.virtual_memory().percent,
        disk_usage=psutil.disk_usage("/").percent,
    )


SOURCES = {
    "synthetic": generate_sample,
    "host": collect_host_sample,
}


# ================= AGENT =================
class AgentStopped(Exception):
    """Raised out of a retry sleep when the agent is asked to stop."""


class Agent:
    """
    Reports a metrics sample to the controller, waits a random interval,
    and repeats until stopped.
    """

    def __init__(
        self,
        agent_id: str,
        controller_url: str = CONTROLLER_URL,
        strategy: str = RETRY_STRATEGY,
        attempts: int = RETRY_ATTEMPTS,
        delay: float = RETRY_DELAY,
        timeout: float = REQUEST_TIMEOUT,
        min_interval: float = MIN_INTERVAL,
        max_interval: float = MAX_INTERVAL,
        source=None,
        session: requests.Session | None = None,
    ):
        if strategy not in ("fixed", "backoff"):
            raise ValueError(f"Unknown retry strategy: {strategy}")
        if min_interval > max_interval:
            raise ValueError("min_interval must not exceed max_interval")

        self.agent_id = agent_id
        self.update_url = controller_url.rstrip("/") + "/update"
        self.strategy = strategy
        self.attempts = attempts
        self.delay = delay
        self.timeout = timeout
        self.min_interval = min_interval
        self.max_interval = max_interval
        if source is None:
            if AGENT_SOURCE not in SOURCES:
                raise ValueError(f"Unknown metrics source: {AGENT_SOURCE}")
            source = SOURCES[AGENT_SOURCE]
        self.source = source
        self.session = session or requests.Session()

        self.stop_event = threading.Event()
        self.thread = threading.Thread(target=self.run, name=agent_id, daemon=True)

    def start(self):
        logger.info(f"[{self.agent_id}] starting, reporting to {self.update_url}")
        self.thread.start()

    def stop(self):
        self.stop_event.set()
        if self.thread.is_alive():
            self.thread.join()
        self.session.close()
        logger.info(f"[{self.agent_id}] stopped")

    def send(self, sample: MetricsSample):
        response = self.session.post(
            self.update_url,
            params={"agent": self.agent_id},
            data=sample.model_dump_json(),
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.debug(f"[{self.agent_id}] sent metrics ({response.status_code})")

    def _sleep(self, seconds: float):
        if self.stop_event.wait(seconds):
            raise AgentStopped()

    def report_once(self) -> bool:
        """Send one sample with retries. Returns False when every attempt failed."""
        sample = self.source()
        retry = retry_fixed if self.strategy == "fixed" else retry_backoff

        try:
            retry(
                lambda: self.send(sample),
                self.attempts,
                self.delay,
                retry_on=(requests.RequestException,),
                sleep=self._sleep,
            )
        except (requests.RequestException, RetryError) as e:
            logger.error(f"[{self.agent_id}] failed to send metrics: {e}")
            return False
        return True

    def run(self):
        while not self.stop_event.is_set():
            try:
                self.report_once()
            except AgentStopped:
                break
            self.stop_event.wait(random.uniform(self.min_interval, self.max_interval))


# ================= LOOP =================
def main():
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(message)s')
    logger.info(
        f"Starting {AGENT_COUNT} agents: controller={CONTROLLER_URL}, "
        f"source={AGENT_SOURCE}, retry={RETRY_STRATEGY}x{RETRY_ATTEMPTS}"
    )

    agents = [Agent(f"Agent-{i}") for i in range(1, AGENT_COUNT + 1)]
    done = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: done.set())

    for a in agents:
        a.start()
    try:
        done.wait()
    except KeyboardInterrupt:
        pass
    finally:
        for a in agents:
            a.stop()


if __name__ == "__main__":
    main()
