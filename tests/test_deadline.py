"""Tests for the Deadline object."""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from entrydesk.services.deadline import Deadline, DeadlineExceeded


class TestDeadline:
    """Tests for Deadline."""

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValueError):
            Deadline(0)

    def test_fresh_deadline_has_time_left(self) -> None:
        deadline = Deadline(5)
        assert not deadline.expired
        assert 0 < deadline.remaining() <= 5
        deadline.check()

    def test_expires_after_timeout(self) -> None:
        deadline = Deadline(0.01)
        time.sleep(0.02)
        assert deadline.expired
        assert deadline.remaining() == 0.0
        with pytest.raises(DeadlineExceeded) as exc_info:
            deadline.check()
        assert not exc_info.value.cancelled

    def test_cancel_trips_early(self) -> None:
        deadline = Deadline(60)
        deadline.cancel()
        assert deadline.expired
        assert deadline.remaining() == 0.0
        with pytest.raises(DeadlineExceeded) as exc_info:
            deadline.check()
        assert exc_info.value.cancelled

    def test_context_manager_closes_on_success(self) -> None:
        with Deadline(60) as deadline:
            assert not deadline.closed
        assert deadline.closed
        assert deadline.expired

    def test_context_manager_closes_on_failure(self) -> None:
        with pytest.raises(RuntimeError):
            with Deadline(60) as deadline:
                raise RuntimeError('boom')
        assert deadline.closed

    def test_on_expire_runs_when_time_runs_out(self) -> None:
        fired = threading.Event()
        deadline = Deadline(0.05)
        deadline.on_expire(fired.set)

        assert fired.wait(2.0)
        assert deadline.expired
        deadline.close()

    def test_on_expire_runs_at_once_when_already_expired(self) -> None:
        calls = []
        deadline = Deadline(60)
        deadline.cancel()
        deadline.on_expire(lambda: calls.append('stop'))
        assert calls == ['stop']

    def test_cancel_runs_expiry_callbacks(self) -> None:
        calls = []
        deadline = Deadline(60)
        deadline.on_expire(lambda: calls.append('stop'))

        deadline.cancel()

        assert calls == ['stop']
        deadline.close()

    def test_close_discards_expiry_callbacks(self) -> None:
        fired = threading.Event()
        deadline = Deadline(0.05)
        deadline.on_expire(fired.set)

        deadline.close()

        assert not fired.wait(0.2)
        deadline.on_expire(fired.set)
        assert not fired.is_set()
