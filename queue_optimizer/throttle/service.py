# queue_optimizer/throttle/service.py
import asyncio
from typing import Any, Dict, List, Optional, Tuple, Union

import ray
from ray.actor import ActorHandle

from queue_optimizer.exceptions import InvalidArgumentError
from queue_optimizer.log_handler import get_logger
from .config import ThrottleConfig, ThrottleNamespace

logger = get_logger(__name__)


class RayThrottleService:
    """Throttle admission shared by dispatchers across a Ray cluster.

    Each (namespace, key) policy lives in its own ThrottleActor, so keys are
    admitted in parallel while each key has exactly one writer.
    """

    def __init__(self):
        self.actors: Dict[Tuple[ThrottleNamespace, str], ActorHandle] = {}
        self._lock = asyncio.Lock()
        logger.info("RayThrottleService initialized")

    async def initialize(self) -> None:
        """Initialize Ray if nobody has done it yet."""
        if not ray.is_initialized():
            from queue_optimizer.ray_init import initialize_ray
            initialize_ray()

    @staticmethod
    def _key(namespace: Union[ThrottleNamespace, str], key: str) -> Tuple[ThrottleNamespace, str]:
        try:
            namespace = ThrottleNamespace(namespace)
        except ValueError:
            raise InvalidArgumentError(f"Unknown throttle namespace: {namespace!r}")
        if not key or not key.strip():
            raise InvalidArgumentError(f"{namespace.value.capitalize()} name must not be empty")
        return namespace, key

    async def set_throttle(
        self,
        namespace: Union[ThrottleNamespace, str],
        key: str,
        max_concurrent: int,
        period_seconds: float = 0,
    ) -> None:
        """Create or replace the actor for a key."""
        actor_key = self._key(namespace, key)
        # Validate locally so a bad policy never reaches the cluster
        ThrottleConfig(max_concurrent, period_seconds)
        await self.initialize()

        from .actors import ThrottleActor

        async with self._lock:
            previous = self.actors.pop(actor_key, None)
            if previous is not None:
                ray.kill(previous)
            self.actors[actor_key] = ThrottleActor.remote(
                f"{actor_key[0].value}:{key}", max_concurrent, period_seconds
            )
        logger.info(f"Throttle actor created for {actor_key[0].value} {key}")

    async def remove_throttle(self, namespace: Union[ThrottleNamespace, str], key: str) -> bool:
        actor_key = self._key(namespace, key)
        async with self._lock:
            actor = self.actors.pop(actor_key, None)
        if actor is None:
            logger.info(f"No throttle actor found for {actor_key[0].value} {key}")
            return False
        ray.kill(actor)
        logger.info(f"Removed throttle actor for {actor_key[0].value} {key}")
        return True

    async def try_acquire(
        self,
        namespace: Union[ThrottleNamespace, str],
        key: str,
        current_running: int,
    ) -> bool:
        """Atomic admission for a key; keys without a throttle are unrestricted."""
        actor = self.actors.get(self._key(namespace, key))
        if actor is None:
            return True
        return await actor.try_acquire.remote(current_running)

    async def admit(
        self,
        job_name: str,
        label: Optional[str] = None,
        job_running: int = 0,
        label_running: int = 0,
    ) -> bool:
        """
        Admit one execution against the job actor and, if given, the label actor.

        The job slot is reserved first and released again when the label
        refuses, so an execution is only kept on record when both allow it.
        Between the two calls the reserved slot is held, which can make a
        concurrent admission for the same job fail but never over-admit.
        """
        job_actor = self.actors.get(self._key(ThrottleNamespace.JOB, job_name))
        label_actor = None
        if label is not None:
            label_actor = self.actors.get(self._key(ThrottleNamespace.LABEL, label))

        if job_actor is None:
            if label_actor is None:
                return True
            return await label_actor.try_acquire.remote(label_running)

        reserved = await job_actor.reserve.remote(job_running)
        if reserved is None:
            return False
        if label_actor is None or await label_actor.try_acquire.remote(label_running):
            return True

        await job_actor.release.remote(reserved)
        logger.debug(f"Released job {job_name} slot, label {label} is throttled")
        return False

    async def get_stats(self) -> List[Dict[str, Any]]:
        actors = list(self.actors.values())
        if not actors:
            return []
        return await asyncio.gather(*(actor.get_stats.remote() for actor in actors))

    async def shutdown(self) -> None:
        async with self._lock:
            for actor in self.actors.values():
                ray.kill(actor)
            self.actors.clear()
        logger.info("RayThrottleService shut down")
