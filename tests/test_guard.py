import pytest

from py_load_eic.errors import GuardBusyError
from py_load_eic.guard import SingleFlightGuard

pytestmark = pytest.mark.unit


def test_try_acquire_is_exclusive_and_non_blocking():
    guard = SingleFlightGuard()

    assert guard.try_acquire() is True
    assert guard.busy is True
    # A second attempt, even from the same holder, is rejected immediately.
    assert guard.try_acquire() is False

    guard.release()
    assert guard.busy is False
    assert guard.try_acquire() is True


def test_hold_releases_on_exception():
    """Tests that the guard is released when the guarded block raises."""
    guard = SingleFlightGuard()

    with pytest.raises(ValueError):
        with guard.hold():
            assert guard.busy
            raise ValueError("boom")

    assert guard.busy is False


def test_hold_raises_when_busy():
    guard = SingleFlightGuard()
    with guard.hold():
        with pytest.raises(GuardBusyError, match="Refresh already in progress"):
            with guard.hold():
                pass
        # The rejected attempt must not release the outer holder.
        assert guard.busy is True
    assert guard.busy is False
