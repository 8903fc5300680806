"""Tests for DeltaFeedSource (mocked WebSocket)."""

import asyncio
import json
from contextlib import asynccontextmanager

import pytest

from app.relay.delta_feed import DeltaFeedSource, parse_ticker_message, subscribe_message
from app.relay.models import Mode


class FakeConnection:
    """Stands in for a websockets client connection."""

    def __init__(self, messages: list[str]) -> None:
        self.messages = messages
        self.sent: list[str] = []

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def __aiter__(self):
        for message in self.messages:
            yield message


def _fake_connect(connection: FakeConnection, urls: list[str]):
    @asynccontextmanager
    async def connect(url):
        urls.append(url)
        yield connection

    return connect


class TestParseTickerMessage:
    """Unit tests for normalizing Delta ticker payloads."""

    def test_mark_price(self):
        """Test a regular ticker message with a string mark price."""
        tick = parse_ticker_message({"symbol": "BTCUSD", "mark_price": "50000.5", "timestamp": 1707580800000})
        assert tick is not None
        assert tick.symbol == "BTCUSD"
        assert tick.price == 50000.5
        assert tick.timestamp == 1707580800000
        assert tick.source is Mode.LIVE

    def test_close_fallback(self):
        """Test that close is used when mark_price is missing."""
        tick = parse_ticker_message({"symbol": "BTCUSD", "close": 49999})
        assert tick is not None
        assert tick.price == 49999.0

    def test_spot_price_fallback(self):
        """Test that spot_price is used when mark_price is unparsable."""
        tick = parse_ticker_message({"symbol": "BTCUSD", "mark_price": "n/a", "spot_price": "48000"})
        assert tick is not None
        assert tick.price == 48000.0

    def test_missing_symbol_is_heartbeat(self):
        assert parse_ticker_message({"type": "heartbeat"}) is None

    def test_missing_price_is_ignored(self):
        """Test that subscription acks without prices are ignored."""
        assert parse_ticker_message({"symbol": "BTCUSD", "type": "subscriptions"}) is None

    def test_zero_price_is_dropped(self):
        """Test that a price of exactly 0 is treated as no price."""
        assert parse_ticker_message({"symbol": "BTCUSD", "mark_price": "0", "close": 0}) is None

    def test_non_object_is_ignored(self):
        assert parse_ticker_message(["BTCUSD", 1]) is None

    def test_missing_timestamp_uses_now(self):
        """Test that a missing timestamp is filled with the current epoch millis."""
        tick = parse_ticker_message({"symbol": "BTCUSD", "mark_price": "1"})
        assert tick is not None
        assert tick.timestamp > 1_000_000_000_000


class TestSubscribeMessage:
    def test_shape(self):
        """Test the subscribe control message names the channel and symbol."""
        assert subscribe_message("btcusd") == {
            "type": "subscribe",
            "payload": {"channels": [{"name": "v2/ticker", "symbols": ["BTCUSD"]}]},
        }


@pytest.mark.asyncio
class TestDeltaFeedSource:
    """Unit tests for DeltaFeedSource with a fake connection."""

    async def test_handle_message_forwards_tick(self):
        """Test that a parsed tick reaches the sink."""
        received = []

        async def sink(tick):
            received.append(tick)

        source = DeltaFeedSource(symbol="BTCUSD")
        source._sink = sink

        await source._handle_message(json.dumps({"symbol": "BTCUSD", "mark_price": "50000"}))

        assert len(received) == 1
        assert received[0].price == 50000.0

    async def test_malformed_json_skipped(self):
        """Test that unparsable frames are discarded without raising."""
        received = []

        async def sink(tick):
            received.append(tick)

        source = DeltaFeedSource(symbol="BTCUSD")
        source._sink = sink

        await source._handle_message("{not json")  # Should not raise

        assert received == []

    async def test_subscribes_and_streams(self):
        """Test a full connection: subscribe message sent, ticks forwarded in order."""
        received = []

        async def sink(tick):
            received.append(tick)

        connection = FakeConnection(
            [
                json.dumps({"type": "subscriptions"}),
                json.dumps({"symbol": "BTCUSD", "mark_price": "50000", "timestamp": 1}),
                json.dumps({"symbol": "BTCUSD", "mark_price": "50010", "timestamp": 2}),
            ]
        )
        urls: list[str] = []
        source = DeltaFeedSource(
            symbol="btcusd",
            url="wss://example.test",
            reconnect_delay=60.0,
            connect=_fake_connect(connection, urls),
        )

        await source.start(sink)
        await asyncio.sleep(0.05)
        await source.stop()

        assert urls == ["wss://example.test"]
        assert [json.loads(m) for m in connection.sent] == [subscribe_message("BTCUSD")]
        assert [t.price for t in received] == [50000.0, 50010.0]

    async def test_sink_error_keeps_connection(self):
        """Test that a failing sink skips one tick without reconnecting."""
        received = []

        async def flaky_sink(tick):
            if not received and tick.price == 50000.0:
                received.append(None)
                raise RuntimeError("publish failed")
            received.append(tick)

        connection = FakeConnection(
            [
                json.dumps({"symbol": "BTCUSD", "mark_price": "50000"}),
                json.dumps({"symbol": "BTCUSD", "mark_price": "50010"}),
            ]
        )
        urls: list[str] = []
        source = DeltaFeedSource(symbol="BTCUSD", reconnect_delay=60.0, connect=_fake_connect(connection, urls))

        await source.start(flaky_sink)
        await asyncio.sleep(0.05)
        await source.stop()

        assert len(urls) == 1
        assert [t.price for t in received if t is not None] == [50010.0]

    async def test_reconnects_after_connect_failure(self):
        """Test that connection errors are logged and retried, never raised."""
        attempts = []

        @asynccontextmanager
        async def refusing_connect(url):
            attempts.append(url)
            raise OSError("connection refused")
            yield  # pragma: no cover

        async def sink(tick):
            pass

        source = DeltaFeedSource(symbol="BTCUSD", reconnect_delay=0.01, connect=refusing_connect)
        await source.start(sink)
        await asyncio.sleep(0.1)

        assert source.is_running
        assert len(attempts) > 1

        await source.stop()

    async def test_start_twice_is_noop(self):
        """Test that a redundant start() does not open a second subscription."""
        urls: list[str] = []
        connection = FakeConnection([])
        source = DeltaFeedSource(symbol="BTCUSD", reconnect_delay=60.0, connect=_fake_connect(connection, urls))

        async def sink(tick):
            pass

        await source.start(sink)
        await source.start(sink)
        await asyncio.sleep(0.05)

        assert len(urls) == 1
        await source.stop()

    async def test_stop_is_idempotent(self):
        """Test that stop() can be called multiple times."""
        source = DeltaFeedSource(symbol="BTCUSD")

        await source.stop()
        await source.stop()  # Should not raise

        assert not source.is_running
