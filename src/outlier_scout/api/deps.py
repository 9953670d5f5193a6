"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from outlier_scout.adapters.store.base import ScoutStore, StateStore
from outlier_scout.services.builders import build_ledger, get_scout_store, get_state_store
from outlier_scout.services.quota import QuotaLedger
from outlier_scout.utils.clock import Clock, utc_now

# Store dependencies
ScoutStoreDep = Annotated[ScoutStore, Depends(get_scout_store)]
StateStoreDep = Annotated[StateStore, Depends(get_state_store)]


def get_clock() -> Clock:
    """Get the time source."""
    return utc_now


ClockDep = Annotated[Clock, Depends(get_clock)]


def get_quota_ledger(state_store: StateStoreDep, clock: ClockDep) -> QuotaLedger:
    """Get the quota ledger over the configured state store."""
    return build_ledger(state_store, clock)


QuotaLedgerDep = Annotated[QuotaLedger, Depends(get_quota_ledger)]
