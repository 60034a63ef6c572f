"""
Tests for the connection lifecycle and reconnect schedule.
"""
from unittest.mock import MagicMock

import pytest

from live_ingest.connection import ConnectionState, ConnectionStateMachine, ReconnectPolicy
from live_ingest.events import ErrorEvent, Provider
from live_ingest.transport.base import DisconnectReason, TransportAdapter


@pytest.fixture
def transport():
    return MagicMock(spec=TransportAdapter)


def _machine(transport, max_attempts=50, **kwargs):
    return ConnectionStateMachine(
        Provider.TIKTOK,
        transport,
        ReconnectPolicy(base_delay=5.0, cap_delay=30.0, max_attempts=max_attempts),
        **kwargs,
    )


def test_backoff_is_linear_and_capped():
    policy = ReconnectPolicy(base_delay=5.0, cap_delay=30.0, max_attempts=50)
    assert [policy.delay_for(n) for n in range(1, 9)] == [5, 10, 15, 20, 25, 30, 30, 30]
    assert not policy.exhausted(50)
    assert policy.exhausted(51)


def test_connect_ack_moves_to_connected(transport):
    machine = _machine(transport)
    assert machine.request_connect("streamer", now=0.0)
    assert machine.state == ConnectionState.CONNECTING
    transport.connect.assert_called_once_with("streamer", reconnect=False)

    assert machine.on_connected(now=1.0)
    assert machine.is_connected
    assert machine.session.attempts == 0


def test_empty_credentials_fail_without_transition(transport):
    machine = _machine(transport)
    assert not machine.request_connect("   ", now=0.0)
    assert machine.state == ConnectionState.DISCONNECTED
    assert machine.session.last_error
    transport.connect.assert_not_called()


def test_connect_ignored_unless_disconnected(transport):
    machine = _machine(transport)
    machine.request_connect("streamer", now=0.0)
    assert not machine.request_connect("other", now=1.0)
    assert transport.connect.call_count == 1


def test_transient_loss_schedules_retry(transport):
    machine = _machine(transport)
    machine.request_connect("streamer", now=0.0)
    machine.on_connected(now=1.0)

    events = machine.on_transport_lost(DisconnectReason.TRANSIENT, "socket closed", now=10.0)
    assert machine.state == ConnectionState.RECONNECTING
    assert machine.session.attempts == 1
    assert machine.session.next_retry_at == 15.0
    assert len(events) == 1 and isinstance(events[0], ErrorEvent)
    assert not events[0].terminal

    assert machine.tick(now=14.9) == []
    assert machine.state == ConnectionState.RECONNECTING
    machine.tick(now=15.0)
    assert machine.state == ConnectionState.CONNECTING
    transport.connect.assert_called_with("streamer", reconnect=True)


def test_successful_reconnect_resets_attempts(transport):
    machine = _machine(transport)
    machine.request_connect("streamer", now=0.0)
    machine.on_transport_lost(DisconnectReason.TRANSIENT, "x", now=0.0)
    machine.tick(now=5.0)
    machine.on_transport_lost(DisconnectReason.TRANSIENT, "x", now=5.0)
    assert machine.session.attempts == 2
    assert machine.session.next_retry_at == 15.0

    machine.tick(now=15.0)
    machine.on_connected(now=16.0)
    assert machine.session.attempts == 0
    assert machine.session.last_error == ""


def test_attempt_cap_is_terminal_and_stays_disconnected(transport):
    machine = _machine(transport, max_attempts=3)
    machine.request_connect("streamer", now=0.0)

    now = 0.0
    for _ in range(3):
        events = machine.on_transport_lost(DisconnectReason.TRANSIENT, "refused", now=now)
        assert not events[0].terminal
        now = machine.session.next_retry_at
        machine.tick(now)
        assert machine.state == ConnectionState.CONNECTING

    (final,) = machine.on_transport_lost(DisconnectReason.TRANSIENT, "refused", now=now)
    assert final.terminal
    assert machine.state == ConnectionState.DISCONNECTED
    assert machine.session.terminal
    assert transport.connect.call_count == 4

    machine.tick(now + 1000.0)
    assert machine.state == ConnectionState.DISCONNECTED
    assert transport.connect.call_count == 4

    # a new user connect starts over
    assert machine.request_connect("streamer", now=now + 2000.0)
    assert machine.session.attempts == 0


@pytest.mark.parametrize(
    "reason", [DisconnectReason.AUTH, DisconnectReason.QUOTA, DisconnectReason.FATAL]
)
def test_non_transient_loss_is_terminal(transport, reason):
    machine = _machine(transport)
    machine.request_connect("video", now=0.0)
    machine.on_connected(now=1.0)

    (event,) = machine.on_transport_lost(reason, "nope", now=2.0)
    assert event.terminal
    assert machine.state == ConnectionState.DISCONNECTED
    assert machine.session.next_retry_at is None


def test_connecting_watchdog(transport):
    machine = _machine(transport, connecting_timeout=30.0)
    machine.request_connect("streamer", now=0.0)

    assert machine.tick(now=29.0) == []
    assert machine.state == ConnectionState.CONNECTING

    (event,) = machine.tick(now=30.0)
    assert not event.terminal
    assert machine.state == ConnectionState.RECONNECTING
    assert machine.session.attempts == 1
    transport.disconnect.assert_called()


def test_loss_while_reconnecting_is_ignored(transport):
    machine = _machine(transport)
    machine.request_connect("streamer", now=0.0)
    machine.on_transport_lost(DisconnectReason.TRANSIENT, "x", now=0.0)
    assert machine.on_transport_lost(DisconnectReason.TRANSIENT, "late", now=1.0) == []
    assert machine.session.attempts == 1


def test_user_disconnect_resets_session(transport):
    changes = []
    machine = _machine(transport, on_state_change=lambda old, new: changes.append(new))
    machine.request_connect("streamer", now=0.0)
    machine.on_transport_lost(DisconnectReason.TRANSIENT, "x", now=0.0)

    machine.disconnect()
    assert machine.state == ConnectionState.DISCONNECTED
    assert machine.session.attempts == 0
    assert machine.tick(now=100.0) == []
    assert changes == [
        ConnectionState.CONNECTING,
        ConnectionState.RECONNECTING,
        ConnectionState.DISCONNECTED,
    ]
