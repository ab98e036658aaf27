import logging
from unittest.mock import MagicMock

import pytest

from services.function_deployer.lifecycle import (
    DEPLOYER_PHASE,
    FunctionArchiveLifecycle,
    LifecycleProcessor,
    SmartLifecycle,
)


class RecordingLifecycle(SmartLifecycle):
    def __init__(self, name, phase, events, fail_on_stop=False):
        self.name = name
        self._phase = phase
        self.events = events
        self.fail_on_stop = fail_on_stop
        self.running = False

    def start(self):
        self.events.append(("start", self.name))
        self.running = True

    def stop(self):
        self.events.append(("stop", self.name))
        self.running = False
        if self.fail_on_stop:
            raise RuntimeError(f"{self.name} failed")

    def is_running(self):
        return self.running

    @property
    def phase(self):
        return self._phase


def test_processor_orders_by_phase():
    events = []
    late = RecordingLifecycle("late", DEPLOYER_PHASE, events)
    early = RecordingLifecycle("early", 0, events)
    processor = LifecycleProcessor([late, early])

    processor.start()
    assert processor.is_running()
    processor.stop()

    assert events == [("start", "early"), ("start", "late"), ("stop", "late"), ("stop", "early")]
    assert not processor.is_running()


def test_processor_skips_running_and_stopped_components():
    events = []
    running = RecordingLifecycle("running", 0, events)
    running.running = True
    idle = RecordingLifecycle("idle", 1, [])
    processor = LifecycleProcessor([running])
    processor.add(idle)

    processor.start()
    assert events == []
    assert idle.running

    idle.running = False
    processor.stop()
    assert events == [("stop", "running")]


def test_processor_stops_every_component_on_failure():
    events = []
    failing = RecordingLifecycle("failing", 10, events, fail_on_stop=True)
    other = RecordingLifecycle("other", 0, events)
    processor = LifecycleProcessor([failing, other])
    processor.start()

    with pytest.raises(RuntimeError, match="failing failed"):
        processor.stop()

    assert ("stop", "other") in events


def test_archive_lifecycle(make_properties, caplog):
    deployer = MagicMock()
    registry = MagicMock()
    properties = make_properties(FUNCTIONS_LOCATION="/opt/functions.zip")
    lifecycle = FunctionArchiveLifecycle(deployer, registry, properties, ["--x=1"])
    caplog.set_level(logging.INFO, logger="function.lifecycle")

    assert lifecycle.phase == DEPLOYER_PHASE == 2**31 - 1 - 1000
    assert not lifecycle.is_running()

    lifecycle.start()
    deployer.deploy.assert_called_once_with(registry, properties, ["--x=1"])
    assert lifecycle.is_running()

    lifecycle.stop()
    deployer.undeploy.assert_called_once_with()
    assert not lifecycle.is_running()

    messages = [r.getMessage() for r in caplog.records if r.name == "function.lifecycle"]
    assert messages == [
        "Deploying archive: /opt/functions.zip",
        "Successfully deployed archive: /opt/functions.zip",
        "Undeploying archive: /opt/functions.zip",
        "Successfully undeployed archive: /opt/functions.zip",
    ]


def test_archive_lifecycle_not_running_after_failed_start(make_properties):
    deployer = MagicMock()
    deployer.deploy.side_effect = RuntimeError("boom")
    lifecycle = FunctionArchiveLifecycle(deployer, MagicMock(), make_properties(FUNCTIONS_LOCATION="x"))

    with pytest.raises(RuntimeError):
        lifecycle.start()

    assert not lifecycle.is_running()
