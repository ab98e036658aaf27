"""
Lifecycle management.

Components with start/stop semantics implement SmartLifecycle and are driven
by LifecycleProcessor: started in ascending phase order, stopped in
descending phase order.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from services.function_context.config import FunctionProperties
from services.function_context.services.catalog import FunctionRegistry

from .deployer import FunctionArchiveDeployer

logger = logging.getLogger("function.lifecycle")

# Integer.MAX_VALUE - 1000: started late, stopped early.
DEPLOYER_PHASE = 2**31 - 1 - 1000


class SmartLifecycle(ABC):
    """A component that can be started and stopped."""

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def is_running(self) -> bool:
        pass

    @property
    def phase(self) -> int:
        return 0


class FunctionArchiveLifecycle(SmartLifecycle):
    """
    Deploys an archive on start() and undeploys it on stop().
    """

    def __init__(
        self,
        deployer: FunctionArchiveDeployer,
        registry: FunctionRegistry,
        properties: FunctionProperties,
        args: Sequence[str] = (),
    ):
        self.deployer = deployer
        self.registry = registry
        self.properties = properties
        self.args = list(args)
        self._running = False

    @property
    def location(self) -> str:
        return self.properties.FUNCTIONS_LOCATION or str(self.deployer.archive.location)

    def start(self) -> None:
        logger.info(f"Deploying archive: {self.location}")
        self.deployer.deploy(self.registry, self.properties, self.args)
        self._running = True
        logger.info(f"Successfully deployed archive: {self.location}")

    def stop(self) -> None:
        logger.info(f"Undeploying archive: {self.location}")
        self.deployer.undeploy()
        logger.info(f"Successfully undeployed archive: {self.location}")
        self._running = False

    def is_running(self) -> bool:
        return self._running

    @property
    def phase(self) -> int:
        return DEPLOYER_PHASE


class LifecycleProcessor:
    """
    Starts and stops a group of SmartLifecycle components.
    """

    def __init__(self, lifecycles: Sequence[SmartLifecycle] = ()):
        self._lifecycles: List[SmartLifecycle] = list(lifecycles)

    def add(self, lifecycle: SmartLifecycle) -> None:
        self._lifecycles.append(lifecycle)

    @property
    def lifecycles(self) -> List[SmartLifecycle]:
        return list(self._lifecycles)

    def start(self) -> None:
        """Start components not yet running, lowest phase first."""
        for lifecycle in sorted(self._lifecycles, key=lambda l: l.phase):
            if not lifecycle.is_running():
                logger.debug(f"Starting {type(lifecycle).__name__} (phase {lifecycle.phase})")
                lifecycle.start()

    def stop(self) -> None:
        """
        Stop running components, highest phase first.

        Every component is stopped even if an earlier one fails; the first
        failure is re-raised afterwards.
        """
        error = None
        for lifecycle in sorted(self._lifecycles, key=lambda l: l.phase, reverse=True):
            if not lifecycle.is_running():
                continue
            logger.debug(f"Stopping {type(lifecycle).__name__} (phase {lifecycle.phase})")
            try:
                lifecycle.stop()
            except Exception as e:
                logger.error(f"Failed to stop {type(lifecycle).__name__}: {e}", exc_info=True)
                if error is None:
                    error = e
        if error is not None:
            raise error

    def is_running(self) -> bool:
        return any(lifecycle.is_running() for lifecycle in self._lifecycles)
