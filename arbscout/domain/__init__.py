"""
Domain module - Business models

Contains pure business models without external dependencies.
All models are JSON-serializable via to_dict().
"""

from arbscout.domain.models import (
    ActiveSetEntry,
    AdmissionProposal,
    AdmissionReason,
    ArbitrageOpportunity,
    Asset,
    FeeBreakdown,
    HistoricalStat,
    OpportunityKind,
    OpportunityLeg,
    Quote,
    VenueKind,
    VolumeSample,
    make_pair,
)

__all__ = [
    "ActiveSetEntry",
    "AdmissionProposal",
    "AdmissionReason",
    "ArbitrageOpportunity",
    "Asset",
    "FeeBreakdown",
    "HistoricalStat",
    "OpportunityKind",
    "OpportunityLeg",
    "Quote",
    "VenueKind",
    "VolumeSample",
    "make_pair",
]
