"""
Governance source: current voting period, proposal under vote, participation.
"""
from __future__ import annotations

from datetime import datetime

from ..providers.resilience import ResilientFetcher
from .base import Fragment, percentage, require_dict, safe_get, source_adapter, to_float
from .endpoints import Endpoints

GOVERNANCE_FIELDS = (
    "proposal",
    "proposalDescription",
    "votingPeriod",
    "votingDescription",
    "participation",
    "participationDescription",
)

_ERROR_TEXT = "Error loading"


def proposal_name(voting: dict) -> str:
    proposal = safe_get(voting, "epoch.proposal")
    if not isinstance(proposal, dict):
        return "None"
    alias = proposal.get("alias")
    if alias:
        return str(alias)
    hash_ = proposal.get("hash")
    if hash_:
        return f"{str(hash_)[:8]}..."
    return "Unknown"


def period_end_text(end_time: object) -> str:
    if not end_time:
        return "N/A"
    try:
        dt = datetime.fromisoformat(str(end_time).replace("Z", "+00:00"))
    except ValueError:
        return "N/A"
    return f"{dt.strftime('%b')} {dt.day}"


@source_adapter(
    "governance",
    GOVERNANCE_FIELDS,
    fallback={
        "proposalDescription": _ERROR_TEXT,
        "votingDescription": _ERROR_TEXT,
        "participationDescription": _ERROR_TEXT,
    },
)
async def fetch_governance(fetcher: ResilientFetcher, endpoints: Endpoints) -> Fragment:
    voting = require_dict(await fetcher.fetch_json(endpoints.voting_period()), "voting period")

    voters = to_float(voting.get("totalVoters")) or 0.0
    bakers = to_float(voting.get("totalBakers")) or 0.0
    kind = str(voting.get("kind") or "")
    has_proposal = isinstance(safe_get(voting, "epoch.proposal"), dict)

    return {
        "proposal": proposal_name(voting),
        "proposalDescription": "In progress" if has_proposal else "No active proposal",
        "votingPeriod": kind[:1].upper() + kind[1:] if kind else "Unknown",
        "votingDescription": f"Ends {period_end_text(voting.get('endTime'))}",
        "participation": percentage(voters, bakers) if voters and bakers else 0.0,
        "participationDescription": f"{int(voters)} voters",
    }
