import asyncio
import random

import pytest

from core.discovery import NameserverEndpoint
from core.exceptions import InvalidConfigurationError
from core.recorder import ChainRecorder
from core.walker import (
    NSECWalker,
    TerminationReason,
    WalkStatus,
    is_apex_sentinel,
    never_terminal,
)
from fakes import FakeGateway, FirstChoice, RecordingListener

NS1 = NameserverEndpoint("ns1.example.test", "10.0.0.1")
NS2 = NameserverEndpoint("ns2.example.test", "10.0.0.2")


def two_server_gateway(chain, live_ip="10.0.0.2", **kwargs):
    return FakeGateway(
        ns={"example.test": [NS1.name, NS2.name]},
        addresses={NS1.name: [NS1.ip], NS2.name: [NS2.ip]},
        chains={live_ip: chain},
        **kwargs
    )


def test_wrap_to_start_records_chain(tmp_path):
    gateway = FakeGateway(
        ns={"example.test": [NS1.name]},
        addresses={NS1.name: [NS1.ip]},
        chains={NS1.ip: {"example.test": "b.example.test", "b.example.test": "example.test"}},
    )
    recorder = ChainRecorder(tmp_path)
    walker = NSECWalker(gateway, recorder=recorder)

    result = asyncio.run(walker.walk("example.test"))

    assert result.status == WalkStatus.SUCCESS
    assert result.reason == TerminationReason.WRAPPED
    assert result.discovered_count == 1
    assert result.found_records
    assert recorder.path_for("example.test").read_text().splitlines() == ["b.example.test"]


def test_artifact_matches_transitions_in_order(tmp_path):
    chain = {
        "example.test": "a.example.test",
        "a.example.test": "b.example.test",
        "b.example.test": "mail.example.test",
        "mail.example.test": "example.test",
    }
    gateway = two_server_gateway(chain)
    gateway.chains[NS1.ip] = chain
    recorder = ChainRecorder(tmp_path)
    listener = RecordingListener()

    result = asyncio.run(NSECWalker(gateway, recorder=recorder, listener=listener).walk("example.test"))

    transitions = [name for _, _, name in listener.of_kind("record")]
    assert transitions == ["a.example.test", "b.example.test", "mail.example.test"]
    assert result.discovered == transitions
    assert recorder.path_for("example.test").read_text().splitlines() == transitions
    # cada passo consulta o nome descoberto no passo anterior
    assert [name for _, name in gateway.nsec_calls] == ["example.test"] + transitions


def test_write_failure_does_not_stop_walk(tmp_path):
    chain = {
        "example.test": "a.example.test",
        "a.example.test": "b.example.test",
        "b.example.test": "example.test",
    }
    gateway = FakeGateway(ns={"example.test": [NS1.name]}, addresses={NS1.name: [NS1.ip]}, chains={NS1.ip: chain})
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    recorder = ChainRecorder(blocker / "out")
    listener = RecordingListener()

    result = asyncio.run(NSECWalker(gateway, recorder=recorder, listener=listener).walk("example.test"))

    assert result.status == WalkStatus.SUCCESS
    assert result.reason == TerminationReason.WRAPPED
    assert result.discovered == ["a.example.test", "b.example.test"]
    assert [name for _, _, name in listener.of_kind("record")] == result.discovered
    assert not recorder.path_for("example.test").exists()


def test_failover_keeps_current_name():
    gateway = two_server_gateway({"example.test": "a.example.test", "a.example.test": "example.test"})
    walker = NSECWalker(gateway, rng=FirstChoice())
    state = walker.start("example.test", [NS1, NS2])
    assert state.active_endpoint == NS1

    for expected in (1, 2):
        assert asyncio.run(walker.step(state)) is None
        assert state.consecutive_failures == expected
        assert state.active_endpoint == NS1

    assert asyncio.run(walker.step(state)) is None
    assert state.pool == [NS2]
    assert state.active_endpoint == NS2
    assert state.consecutive_failures == 0
    assert state.current_name == "example.test"

    # a mesma consulta é refeita no novo endpoint
    assert asyncio.run(walker.step(state)) is None
    assert gateway.nsec_calls[-1] == (NS2.ip, "example.test")
    assert state.current_name == "a.example.test"


def test_failover_full_walk_reports_dropped_endpoint():
    gateway = two_server_gateway({"example.test": "a.example.test", "a.example.test": "example.test"})
    listener = RecordingListener()

    result = asyncio.run(NSECWalker(gateway, listener=listener, rng=FirstChoice()).walk("example.test"))

    assert result.status == WalkStatus.SUCCESS
    assert result.discovered == ["a.example.test"]
    assert result.last_endpoint == NS2
    assert listener.of_kind("dropped") == [("dropped", NS1, 1)]
    assert gateway.nsec_calls[:3] == [(NS1.ip, "example.test")] * 3


def test_endpoints_exhausted_preserves_count():
    gateway = FakeGateway(
        ns={"example.test": [NS1.name]},
        addresses={NS1.name: [NS1.ip]},
        chains={NS1.ip: {"example.test": "a.example.test"}},
    )
    listener = RecordingListener()

    result = asyncio.run(NSECWalker(gateway, listener=listener).walk("example.test"))

    assert result.status == WalkStatus.ENDPOINTS_EXHAUSTED
    assert result.discovered_count == 1
    assert not result.found_records
    assert len(gateway.nsec_calls) == 4
    assert listener.of_kind("finished") == [("finished", WalkStatus.ENDPOINTS_EXHAUSTED)]


def test_same_ip_under_two_names_removed_independently():
    shared_a = NameserverEndpoint("ns1.example.test", "10.0.0.9")
    shared_b = NameserverEndpoint("ns2.example.test", "10.0.0.9")
    gateway = FakeGateway(chains={"10.0.0.9": {"example.test": "a.example.test"}}, fail_first=3)
    walker = NSECWalker(gateway, rng=FirstChoice())
    state = walker.start("example.test", [shared_a, shared_b])

    for _ in range(3):
        asyncio.run(walker.step(state))

    assert state.pool == [shared_b]
    assert state.active_endpoint == shared_b
    asyncio.run(walker.step(state))
    assert state.discovered == ["a.example.test"]


def test_stalled_chain_terminates_as_success():
    gateway = FakeGateway(
        ns={"example.test": [NS1.name]},
        addresses={NS1.name: [NS1.ip]},
        chains={NS1.ip: {"example.test": "a.example.test", "a.example.test": "a.example.test"}},
    )

    result = asyncio.run(NSECWalker(gateway).walk("example.test"))

    assert result.status == WalkStatus.SUCCESS
    assert result.reason == TerminationReason.STALLED
    assert result.discovered == ["a.example.test"]


def test_single_record_zone_yields_no_records():
    gateway = FakeGateway(
        ns={"example.test": [NS1.name]},
        addresses={NS1.name: [NS1.ip]},
        chains={NS1.ip: {"example.test": "example.test"}},
    )

    result = asyncio.run(NSECWalker(gateway).walk("example.test"))

    assert result.succeeded
    assert result.discovered_count == 0
    assert not result.found_records


def test_sentinel_terminates_walk():
    chain = {"example.test": "a.example.test", "a.example.test": "\\000.example.test"}
    gateway = FakeGateway(ns={"example.test": [NS1.name]}, addresses={NS1.name: [NS1.ip]}, chains={NS1.ip: chain})

    result = asyncio.run(NSECWalker(gateway).walk("example.test"))

    assert result.reason == TerminationReason.SENTINEL
    assert result.discovered == ["a.example.test"]


def test_sentinel_check_can_be_disabled():
    chain = {
        "example.test": "\\000.example.test",
        "\\000.example.test": "example.test",
    }
    gateway = FakeGateway(ns={"example.test": [NS1.name]}, addresses={NS1.name: [NS1.ip]}, chains={NS1.ip: chain})

    result = asyncio.run(NSECWalker(gateway, is_terminal=never_terminal).walk("example.test"))

    assert result.reason == TerminationReason.WRAPPED
    assert result.discovered == ["\\000.example.test"]


def test_cycle_that_skips_start_terminates():
    chain = {
        "sub.example.test": "x.example.test",
        "x.example.test": "y.example.test",
        "y.example.test": "x.example.test",
    }
    gateway = FakeGateway(
        ns={"sub.example.test": [NS1.name]}, addresses={NS1.name: [NS1.ip]}, chains={NS1.ip: chain}
    )

    result = asyncio.run(NSECWalker(gateway).walk("sub.example.test"))

    assert result.reason == TerminationReason.CYCLE
    assert result.discovered == ["x.example.test", "y.example.test"]


def test_no_nameservers():
    listener = RecordingListener()
    result = asyncio.run(NSECWalker(FakeGateway(), listener=listener).walk("example.test"))

    assert result.status == WalkStatus.NO_NAMESERVERS
    assert listener.of_kind("addresses") == []


def test_no_ips():
    gateway = FakeGateway(ns={"example.test": [NS1.name, NS2.name]})
    result = asyncio.run(NSECWalker(gateway).walk("example.test"))

    assert result.status == WalkStatus.NO_IPS
    assert result.nameservers == [NS1.name, NS2.name]
    assert gateway.nsec_calls == []


def test_initial_endpoint_uses_injected_rng():
    endpoints = [NS1, NS2, NameserverEndpoint("ns3.example.test", "10.0.0.3")]
    expected = random.Random(42).choice(list(endpoints))

    state = NSECWalker(FakeGateway(), rng=random.Random(42)).start("example.test", endpoints)

    assert state.active_endpoint == expected


def test_next_name_is_normalized():
    chain = {"example.test": "A.Example.Test.", "a.example.test": "EXAMPLE.TEST."}
    gateway = FakeGateway(ns={"example.test": [NS1.name]}, addresses={NS1.name: [NS1.ip]}, chains={NS1.ip: chain})

    result = asyncio.run(NSECWalker(gateway).walk("Example.Test."))

    assert result.domain == "example.test"
    assert result.discovered == ["a.example.test"]
    assert result.reason == TerminationReason.WRAPPED


def test_invalid_failure_threshold():
    with pytest.raises(InvalidConfigurationError):
        NSECWalker(FakeGateway(), max_failures=0)


def test_apex_sentinel_predicate():
    assert is_apex_sentinel("\\000.example.test")
    assert is_apex_sentinel("\x00.example.test")
    assert not is_apex_sentinel("a\\000.example.test")
    assert not is_apex_sentinel("example.test")
