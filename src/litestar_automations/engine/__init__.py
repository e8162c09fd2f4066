"""Automation service, run ledger and in-memory store.

This package holds the async layer around the core: the service that applies
domain operations against a store, the ledger that records runs, and a
process-local store implementation.
"""

from __future__ import annotations

from litestar_automations.engine.ledger import RunLedger
from litestar_automations.engine.memory import InMemoryAutomationStore
from litestar_automations.engine.service import AutomationService

__all__ = ["AutomationService", "InMemoryAutomationStore", "RunLedger"]
