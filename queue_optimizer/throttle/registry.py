# queue_optimizer/throttle/registry.py
import threading
import time
from contextlib import ExitStack
from typing import Callable, Dict, Optional, Tuple, Union

from queue_optimizer.exceptions import InvalidArgumentError, UnknownKeyError
from queue_optimizer.log_handler import get_logger
from .config import ThrottleConfig, ThrottleNamespace

logger = get_logger(__name__)

_Key = Tuple[ThrottleNamespace, str]


class ThrottleRegistry:
    """Named throttle policies for jobs and labels.

    Every policy has its own lock, dropped with the policy; keys without a
    policy hold no state at all. ``try_acquire`` and ``admit`` hold the
    relevant key locks across the admission check and the execution record,
    so two dispatchers can never both pass a cap with one slot left.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._throttles: Dict[ThrottleNamespace, Dict[str, ThrottleConfig]] = {
            ThrottleNamespace.JOB: {},
            ThrottleNamespace.LABEL: {},
        }
        self._key_locks: Dict[_Key, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def _normalize(namespace: Union[ThrottleNamespace, str], key: str) -> _Key:
        try:
            namespace = ThrottleNamespace(namespace)
        except ValueError:
            raise InvalidArgumentError(f"Unknown throttle namespace: {namespace!r}")
        if not isinstance(key, str) or not key.strip():
            raise InvalidArgumentError(f"{namespace.value.capitalize()} name must not be empty")
        return namespace, key

    def _entry(self, namespace: ThrottleNamespace, key: str) -> Tuple[Optional[ThrottleConfig], Optional[threading.Lock]]:
        """Policy and its lock, read together; (None, None) for keys without a policy."""
        with self._registry_lock:
            config = self._throttles[namespace].get(key)
            if config is None:
                return None, None
            return config, self._key_locks[(namespace, key)]

    def set_throttle(
        self,
        namespace: Union[ThrottleNamespace, str],
        key: str,
        max_concurrent: int,
        period_seconds: float = 0,
    ) -> ThrottleConfig:
        """Create or replace the policy for a key. History of a replaced policy is dropped."""
        namespace, key = self._normalize(namespace, key)
        config = ThrottleConfig(max_concurrent, period_seconds, clock=self._clock)

        # each policy gets its own lock; callers still holding the old one work on the old policy
        with self._registry_lock:
            self._throttles[namespace][key] = config
            self._key_locks[(namespace, key)] = threading.Lock()

        logger.info(f"Set throttle for {namespace.value} {key}: {config.describe()}")
        return config

    def remove_throttle(self, namespace: Union[ThrottleNamespace, str], key: str) -> bool:
        namespace, key = self._normalize(namespace, key)
        with self._registry_lock:
            removed = self._throttles[namespace].pop(key, None)
            self._key_locks.pop((namespace, key), None)

        if removed is None:
            logger.info(f"No throttle found for {namespace.value} {key}")
            return False
        logger.info(f"Removed throttle for {namespace.value} {key}")
        return True

    def get(self, namespace: Union[ThrottleNamespace, str], key: str) -> Optional[ThrottleConfig]:
        namespace, key = self._normalize(namespace, key)
        with self._registry_lock:
            return self._throttles[namespace].get(key)

    def require(self, namespace: Union[ThrottleNamespace, str], key: str) -> ThrottleConfig:
        config = self.get(namespace, key)
        if config is None:
            raise UnknownKeyError(f"No throttle configured for {ThrottleNamespace(namespace).value} {key}")
        return config

    def list_throttles(self, namespace: Union[ThrottleNamespace, str]) -> Dict[str, ThrottleConfig]:
        namespace = ThrottleNamespace(namespace)
        with self._registry_lock:
            return dict(self._throttles[namespace])

    def try_acquire(
        self,
        namespace: Union[ThrottleNamespace, str],
        key: str,
        current_running: int,
    ) -> bool:
        """Atomically check a key's throttle and record the execution when allowed.

        Keys without a policy are unrestricted; nothing is recorded and no
        lock is kept for them.
        """
        namespace, key = self._normalize(namespace, key)
        config, lock = self._entry(namespace, key)
        if config is None:
            return True

        with lock:
            if not config.is_allowed_to_start(current_running):
                logger.debug(f"Throttled {namespace.value} {key} ({current_running} running)")
                return False
            config.record_execution()
            return True

    def admit(
        self,
        job_name: str,
        label: Optional[str] = None,
        job_running: int = 0,
        label_running: int = 0,
    ) -> bool:
        """Admit one execution of a job, honouring both its job and label throttles.

        The execution is recorded against both policies only when both allow it.
        """
        job_key = self._normalize(ThrottleNamespace.JOB, job_name)
        if label is None:
            return self.try_acquire(*job_key, job_running)
        label_key = self._normalize(ThrottleNamespace.LABEL, label)

        job_config, job_lock = self._entry(*job_key)
        label_config, label_lock = self._entry(*label_key)

        with ExitStack() as stack:
            # job lock always before label lock
            for lock in (job_lock, label_lock):
                if lock is not None:
                    stack.enter_context(lock)

            if job_config is not None and not job_config.is_allowed_to_start(job_running):
                logger.debug(f"Throttled job {job_name} ({job_running} running)")
                return False
            if label_config is not None and not label_config.is_allowed_to_start(label_running):
                logger.debug(f"Throttled label {label} for job {job_name} ({label_running} running)")
                return False

            if job_config is not None:
                job_config.record_execution()
            if label_config is not None:
                label_config.record_execution()
            return True

    # Namespace shortcuts

    def set_job_throttle(self, job_name: str, max_concurrent: int, period_seconds: float = 0) -> ThrottleConfig:
        return self.set_throttle(ThrottleNamespace.JOB, job_name, max_concurrent, period_seconds)

    def set_label_throttle(self, label: str, max_concurrent: int, period_seconds: float = 0) -> ThrottleConfig:
        return self.set_throttle(ThrottleNamespace.LABEL, label, max_concurrent, period_seconds)

    def remove_job_throttle(self, job_name: str) -> bool:
        return self.remove_throttle(ThrottleNamespace.JOB, job_name)

    def remove_label_throttle(self, label: str) -> bool:
        return self.remove_throttle(ThrottleNamespace.LABEL, label)

    def get_job_throttle(self, job_name: str) -> Optional[ThrottleConfig]:
        return self.get(ThrottleNamespace.JOB, job_name)

    def get_label_throttle(self, label: str) -> Optional[ThrottleConfig]:
        return self.get(ThrottleNamespace.LABEL, label)

    def job_throttles(self) -> Dict[str, ThrottleConfig]:
        return self.list_throttles(ThrottleNamespace.JOB)

    def label_throttles(self) -> Dict[str, ThrottleConfig]:
        return self.list_throttles(ThrottleNamespace.LABEL)
