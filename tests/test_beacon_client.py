"""Beacon node client against a local aiohttp stand-in."""

from __future__ import annotations

import json

import pytest
from aiohttp import web

from beacon_faucet.beacon.client import BeaconClient, iter_sse, parse_head_event
from beacon_faucet.errors import UpstreamError

from tests.factories import make_block, make_inclusion


async def _lines(*lines: str):
    for line in lines:
        yield line


async def test_iter_sse_groups_events():
    events = [
        e async for e in iter_sse(_lines(
            ": keepalive",
            "event: head",
            'data: {"slot": "1"}',
            "",
            "event: block",
            "data: {}",
            "",
            "data: trailing",
        ))
    ]
    assert events == [("head", '{"slot": "1"}'), ("block", "{}"), ("message", "trailing")]


async def test_iter_sse_joins_multiline_data():
    events = [e async for e in iter_sse(_lines("event: head", "data: a", "data: b", ""))]
    assert events == [("head", "a\nb")]


def test_parse_head_event():
    event = parse_head_event('{"slot": "3200", "block": "0xab", "epoch_transition": true}')
    assert event.slot == 3200
    assert event.block == "0xab"
    assert event.epoch_transition is True


def test_parse_head_event_malformed():
    assert parse_head_event("not json") is None
    assert parse_head_event('{"block": "0xab"}') is None


@pytest.fixture
async def beacon_node():
    """Local HTTP server speaking the subset of the beacon API the client uses."""

    async def head_stream(request):
        assert request.query.get("topics") == "head"
        resp = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await resp.prepare(request)
        for slot, transition in ((3199, False), (3200, True)):
            payload = json.dumps({"slot": str(slot), "block": "0x00", "epoch_transition": transition})
            await resp.write(f"event: head\ndata: {payload}\n\n".encode())
        await resp.write(b"event: block\ndata: {}\n\n")
        await resp.write_eof()
        return resp

    async def inclusion(request):
        return web.json_response({"data": make_inclusion(0.9, 0.5)})

    async def block(request):
        slot = int(request.match_info["slot"])
        if slot == 404:
            return web.json_response({"message": "not found"}, status=404)
        if slot == 500:
            return web.json_response({"message": "boom"}, status=500)
        return web.json_response({"version": "deneb", "data": make_block(attester=[([42], [42])])})

    async def queue_ok(request):
        return web.json_response({
            "status": "OK",
            "data": {"beaconchain_entering": 12, "beaconchain_exiting": 3, "validatorscount": 900000},
        })

    async def queue_bad(request):
        return web.json_response({"status": "ERROR: rate limited", "data": None})

    app = web.Application()
    app.router.add_get("/eth/v1/events", head_stream)
    app.router.add_get("/lighthouse/validator_inclusion/{epoch}/global", inclusion)
    app.router.add_get("/eth/v2/beacon/blocks/{slot}", block)
    app.router.add_get("/queue", queue_ok)
    app.router.add_get("/queue-bad", queue_bad)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    yield f"http://{host}:{port}"
    await runner.cleanup()


async def test_head_events_stream(beacon_node):
    client = BeaconClient(beacon_node, timeout=5)
    events = [e async for e in client.head_events()]
    assert [(e.slot, e.epoch_transition) for e in events] == [(3199, False), (3200, True)]


async def test_validator_inclusion(beacon_node):
    data = await BeaconClient(beacon_node, timeout=5).get_validator_inclusion(99)
    assert data["previous_epoch_active_gwei"] == 1_000_000


async def test_block_found_missing_and_failing(beacon_node):
    client = BeaconClient(beacon_node, timeout=5)
    block = await client.get_block(7)
    assert block["message"]["body"]["attester_slashings"]
    assert await client.get_block(404) is None
    with pytest.raises(UpstreamError, match="status code 500"):
        await client.get_block(500)


async def test_queue_stats(beacon_node):
    stats = await BeaconClient(beacon_node, timeout=5).get_queue_stats(f"{beacon_node}/queue")
    assert (stats.entering, stats.exiting, stats.active_validators) == (12, 3, 900000)


async def test_queue_stats_bad_status(beacon_node):
    with pytest.raises(UpstreamError, match="unexpected body status"):
        await BeaconClient(beacon_node, timeout=5).get_queue_stats(f"{beacon_node}/queue-bad")


async def test_unreachable_node_is_upstream_error():
    client = BeaconClient("http://127.0.0.1:9", timeout=1)
    with pytest.raises(UpstreamError):
        await client.get_validator_inclusion(1)
