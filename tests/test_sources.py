"""
Source adapters against the scripted Tezos network fixture.

Each adapter either returns Ok(fragment) with only the fields it owns, or
Failed(reason) with its documented fallback applied later by the aggregator.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from tezos_telemetry.core.errors import FieldOwnershipError
from tezos_telemetry.providers.base import Failed, Ok
from tezos_telemetry.sources import (
    Endpoints,
    check_api_health,
    fetch_bakers,
    fetch_cycle,
    fetch_ecosystem,
    fetch_governance,
    fetch_issuance,
    fetch_staking,
    fetch_volume,
)
from tezos_telemetry.sources.base import source_adapter
from tezos_telemetry.sources.consensus import count_tz4_bakers, format_time_remaining
from tezos_telemetry.sources.economy import SupplyInput, annualized_net_issuance, staking_apy
from tezos_telemetry.sources.governance import period_end_text, proposal_name
from tests.fakes import FakeTransport, network_routes, scripted_fetcher
from tests.fakes.network import current_statistics, past_statistics

EP = Endpoints()
NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc).timestamp()


def _run(adapter, transport=None, **kwargs):
    transport = transport or FakeTransport(network_routes(EP))
    return asyncio.run(adapter(scripted_fetcher(transport), EP, **kwargs))


# ---------------------------------------------------------------------------
# Consensus
# ---------------------------------------------------------------------------


def test_bakers_350_active_40_tz4():
    result = _run(fetch_bakers)
    assert isinstance(result, Ok)
    assert result.value["totalBakers"] == 350
    assert result.value["tz4Bakers"] == 40
    assert result.value["tz4Percentage"] == pytest.approx(11.43, abs=0.01)


def test_bakers_fall_back_to_tzkt_when_rpc_list_fails():
    transport = FakeTransport(network_routes(EP))
    transport.fail(EP.rpc_active_delegates())
    result = _run(fetch_bakers, transport)
    assert isinstance(result, Ok)
    assert result.value["totalBakers"] == 350
    assert transport.call_count(EP.active_bakers_count()) == 1


def test_bakers_fail_when_consensus_ops_unavailable():
    transport = FakeTransport(network_routes(EP))
    transport.fail("/operations/update_consensus_key")
    result = _run(fetch_bakers, transport)
    assert isinstance(result, Failed)
    assert "FetchError" in result.reason
    assert fetch_bakers.fallback == {"totalBakers": 0, "tz4Bakers": 0, "tz4Percentage": 0.0}


def test_count_tz4_latest_key_per_active_baker_wins():
    ops = [
        {"sender": {"address": "tz1a"}, "publicKeyHash": "tz1rotated"},
        {"sender": {"address": "tz1a"}, "publicKeyHash": "tz4old"},
        {"sender": {"address": "tz1b"}, "publicKeyHash": "tz4new"},
        {"sender": {"address": "tz1gone"}, "publicKeyHash": "tz4x"},
        {"sender": None, "publicKeyHash": "tz4y"},
    ]
    assert count_tz4_bakers(ops, {"tz1a", "tz1b"}) == 1


def test_cycle_progress_and_time_remaining():
    result = _run(fetch_cycle)
    assert isinstance(result, Ok)
    assert result.value["cycle"] == 850
    assert result.value["cycleProgress"] == pytest.approx(66.67, abs=0.01)
    assert result.value["cycleTimeRemaining"] == "7h 59m left"


def test_cycle_uses_fallback_constants():
    transport = FakeTransport(network_routes(EP))
    transport.fail(EP.rpc_constants())
    result = _run(fetch_cycle, transport)
    assert isinstance(result, Ok)
    assert result.value["cycleProgress"] == pytest.approx(50.0)
    assert result.value["cycleTimeRemaining"] == "11h 59m left"


@pytest.mark.parametrize(
    "blocks,block_time,expected",
    [(0, 6, "< 1m left"), (-3, 6, "< 1m left"), (10, 6, "1m left"), (700, 6, "1h 10m left")],
)
def test_format_time_remaining(blocks, block_time, expected):
    assert format_time_remaining(blocks, block_time) == expected


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------


def test_governance_fields():
    result = _run(fetch_governance)
    assert isinstance(result, Ok)
    assert result.value == {
        "proposal": "Seoul",
        "proposalDescription": "In progress",
        "votingPeriod": "Exploration",
        "votingDescription": "Ends Oct 20",
        "participation": pytest.approx(70.0),
        "participationDescription": "210 voters",
    }


def test_governance_failure_fallback_text():
    transport = FakeTransport(network_routes(EP))
    transport.fail(EP.voting_period())
    assert isinstance(_run(fetch_governance, transport), Failed)
    assert fetch_governance.fallback["proposal"] == "N/A"
    assert fetch_governance.fallback["votingDescription"] == "Error loading"


def test_proposal_name_variants():
    assert proposal_name({"epoch": {"proposal": {"alias": "Rio"}}}) == "Rio"
    assert proposal_name({"epoch": {"proposal": {"hash": "PsRiotumaAMotcRoDWW1bysEhQy2n1M5fy8JgRp8jjRfHGmfeA7"}}}) == "PsRiotum..."
    assert proposal_name({"epoch": {"proposal": {}}}) == "Unknown"
    assert proposal_name({"epoch": {}}) == "None"


def test_period_end_text():
    assert period_end_text("2026-01-05T00:00:00Z") == "Jan 5"
    assert period_end_text(None) == "N/A"
    assert period_end_text("not a date") == "N/A"


# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------


def test_issuance_from_statistics_window():
    result = _run(fetch_issuance, now=NOW)
    assert isinstance(result, Ok)
    frag = result.value
    expected = annualized_net_issuance(current_statistics(), past_statistics()[0])
    assert frag["currentIssuanceRate"] == pytest.approx(expected)
    assert frag["currentIssuanceRate"] == pytest.approx(4.53, abs=0.01)
    assert frag["protocolIssuanceRate"] == pytest.approx(3.5)
    assert frag["lbIssuanceRate"] == pytest.approx(expected - 3.5)
    assert frag["totalSupply"] == pytest.approx(1_050_000_000)
    assert frag["totalBurned"] == pytest.approx(50_000_000)


def test_issuance_without_history_reports_protocol_rate():
    transport = FakeTransport(network_routes(EP))
    transport.fail("/statistics?timestamp.ge=")
    result = _run(fetch_issuance, transport, now=NOW)
    assert isinstance(result, Ok)
    assert result.value["currentIssuanceRate"] == pytest.approx(3.5)
    assert result.value["lbIssuanceRate"] == 0.0


def test_issuance_without_current_supply_uses_rpc_supply_and_protocol_rate():
    transport = FakeTransport(network_routes(EP, totalSupply=None))
    result = _run(fetch_issuance, transport, now=NOW)
    assert isinstance(result, Ok)
    assert result.value["currentIssuanceRate"] == pytest.approx(3.5)
    assert result.value["protocolIssuanceRate"] == pytest.approx(3.5)
    assert result.value["lbIssuanceRate"] == 0.0
    assert result.value["totalSupply"] == pytest.approx(1_050_000_000)
    assert result.value["totalBurned"] == pytest.approx(50_000_000)
    assert transport.call_count(EP.rpc_total_supply()) == 1


def test_issuance_supply_from_rpc_when_statistics_down():
    transport = FakeTransport(network_routes(EP))
    transport.fail(EP.statistics_current())
    result = _run(fetch_issuance, transport, now=NOW)
    assert isinstance(result, Ok)
    assert result.value["totalSupply"] == pytest.approx(1_050_000_000)
    assert result.value["totalBurned"] == 0.0
    assert transport.call_count(EP.rpc_total_supply()) == 1


def test_issuance_fails_without_any_supply_source():
    transport = FakeTransport(network_routes(EP))
    transport.fail(EP.statistics_current())
    transport.fail(EP.rpc_total_supply())
    assert isinstance(_run(fetch_issuance, transport, now=NOW), Failed)


def test_staking_uses_supplied_total_supply():
    supply = SupplyInput(total_supply=1_050_000_000, protocol_rate=3.5)
    result = _run(fetch_staking, supply=supply)
    assert isinstance(result, Ok)
    assert result.value["stakingRatio"] == pytest.approx(25.0)
    assert result.value["delegatedRatio"] == pytest.approx(40.0)
    assert result.value["stakeAPY"] == 9.1
    assert result.value["delegateAPY"] == 3.0


def test_staking_without_supply_fails_without_network():
    transport = FakeTransport(network_routes(EP))
    result = _run(fetch_staking, transport, supply=None)
    assert isinstance(result, Failed)
    assert transport.call_count() == 0
    assert fetch_staking.fallback["stakingRatio"] == 0.0


def test_staking_apy_zero_when_undefined():
    assert staking_apy(0.0, 0.0, 3.5) == (0.0, 0.0)
    assert staking_apy(0.25, 0.4, 0.0) == (0.0, 0.0)


def test_supply_input_from_fragment():
    assert SupplyInput.from_fragment({"totalSupply": 0.0}) is None
    got = SupplyInput.from_fragment({"totalSupply": 10.0, "protocolIssuanceRate": 2.5})
    assert got == SupplyInput(total_supply=10.0, protocol_rate=2.5)


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


def test_volume_counts():
    result = _run(fetch_volume, now=NOW)
    assert isinstance(result, Ok)
    assert result.value == {"transactionVolume24h": 1_234_567, "contractCalls24h": 234_567}


def test_ecosystem_counts():
    result = _run(fetch_ecosystem)
    assert result == Ok(
        {"fundedAccounts": 850_000, "smartContracts": 200_000, "tokens": 1_500_000, "rollups": 12}
    )


def test_ecosystem_is_all_or_nothing():
    transport = FakeTransport(network_routes(EP))
    transport.fail(EP.tokens_count())
    assert isinstance(_run(fetch_ecosystem, transport), Failed)


def test_non_integer_count_is_payload_failure():
    transport = FakeTransport(network_routes(EP))
    transport.route(EP.rollups_count(), {"unexpected": True})
    result = _run(fetch_ecosystem, transport)
    assert isinstance(result, Failed)
    assert result.reason.startswith("PayloadError")


# ---------------------------------------------------------------------------
# Adapter boundary
# ---------------------------------------------------------------------------


def test_adapter_producing_unowned_field_raises():
    @source_adapter("rogue", ("tokens",))
    async def rogue(fetcher, endpoints):
        return {"tokens": 1, "rollups": 2}

    with pytest.raises(FieldOwnershipError):
        _run(rogue)


def test_adapter_bug_escapes_boundary():
    @source_adapter("buggy", ("tokens",))
    async def buggy(fetcher, endpoints):
        raise ZeroDivisionError("bug")

    with pytest.raises(ZeroDivisionError):
        _run(buggy)


def test_adapter_declaring_unknown_field_rejected():
    with pytest.raises(FieldOwnershipError):
        source_adapter("typo", ("totalBakerz",))


def test_api_health():
    transport = FakeTransport(network_routes(EP))
    assert asyncio.run(check_api_health(transport, EP)) == {"tzkt": True, "octez": True}
    transport.fail(EP.rpc_header())
    assert asyncio.run(check_api_health(transport, EP)) == {"tzkt": True, "octez": False}
