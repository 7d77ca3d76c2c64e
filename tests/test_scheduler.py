from datetime import timedelta

from eshara.core.config import RuntimeConfig
from eshara.domain.defs import DelayDef, LocalizedText
from eshara.services.scheduler import Scheduler

from tests.helpers.fake_clock import DEFAULT_START as T


def _delay(seconds: int) -> DelayDef:
    return DelayDef(seconds=seconds, message=LocalizedText({"en": "..."}), next_node_id="next")


def test_arm_adds_delay_to_now() -> None:
    assert Scheduler().arm(_delay(300), T) == T + timedelta(seconds=300)


def test_elapsed_boundary() -> None:
    wake_at = Scheduler().arm(_delay(300), T)

    assert not Scheduler.is_elapsed(wake_at, T + timedelta(seconds=299))
    assert Scheduler.is_elapsed(wake_at, T + timedelta(seconds=300))
    assert Scheduler.is_elapsed(wake_at, T + timedelta(days=3))


def test_debug_mode_caps_long_delays() -> None:
    scheduler = Scheduler(RuntimeConfig(debug=True))

    assert scheduler.arm(_delay(3600), T) <= T + timedelta(seconds=5)
    assert scheduler.effective_seconds(2) == 2


def test_negative_seconds_never_schedule_in_the_past() -> None:
    assert Scheduler().arm(_delay(-10), T) == T


def test_remaining_is_never_negative() -> None:
    wake_at = T + timedelta(seconds=90)

    assert Scheduler.remaining(wake_at, T) == timedelta(seconds=90)
    assert Scheduler.remaining(wake_at, T + timedelta(seconds=120)) == timedelta(0)
