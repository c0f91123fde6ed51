"""
QuickBooks Online JSON <-> the raw line shape used by the reconciliation parser.

Fetching from the API is someone else's job; this module works on exports
already on disk or in memory.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from payledger.core.models import PostingType
from payledger.core.utils import atomic_write_json
from payledger.reconcile.engine import ref_value

logger = logging.getLogger(__name__)


def normalize_journal_entry(qbo: Mapping[str, Any]) -> Dict[str, Any]:
    lines = []
    for line in qbo.get("Line") or []:
        detail = line.get("JournalEntryLineDetail")
        if not detail:
            continue
        entity = detail.get("Entity") or {}
        entity_ref = entity.get("EntityRef") if entity.get("Type", "Employee") == "Employee" else None
        lines.append({
            "description": line.get("Description", ""),
            "amount": line.get("Amount"),
            "postingType": detail.get("PostingType"),
            "accountRef": ref_value(detail.get("AccountRef")),
            "classRef": ref_value(detail.get("ClassRef")),
            "entityRef": entity_ref,
        })
    return {"transactionDate": qbo.get("TxnDate"), "documentNumber": qbo.get("DocNumber"), "lines": lines}


def normalize_bill(qbo: Mapping[str, Any]) -> Dict[str, Any]:
    lines = []
    for line in qbo.get("Line") or []:
        detail = line.get("AccountBasedExpenseLineDetail")
        if not detail:
            continue
        lines.append({
            "description": line.get("Description", ""),
            "amount": line.get("Amount"),
            "postingType": PostingType.DEBIT.value,
            "accountRef": ref_value(detail.get("AccountRef")),
            "classRef": ref_value(detail.get("ClassRef")),
            "entityRef": None,
        })
    return {"transactionDate": qbo.get("TxnDate"), "documentNumber": qbo.get("DocNumber"), "lines": lines}


def normalize_employee(qbo: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "external_id": ref_value(qbo.get("Id")),
        "payroll_number": qbo.get("EmployeeNumber"),
        "name": qbo.get("DisplayName", ""),
    }


def _records(data: Mapping[str, Any], entity: str) -> List[Mapping[str, Any]]:
    # a saved query response nests the entities under QueryResponse
    if "QueryResponse" in data:
        data = data["QueryResponse"]
    return list(data.get(entity) or [])


def load_export(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """Read a QBO export with JournalEntry, Bill and Employee lists into raw shapes."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    export = {
        "journals": [normalize_journal_entry(j) for j in _records(data, "JournalEntry")],
        "bills": [normalize_bill(b) for b in _records(data, "Bill")],
        "employees": [normalize_employee(e) for e in _records(data, "Employee")],
    }
    logger.info("loaded %d journals, %d bills, %d employees from %s",
                len(export["journals"]), len(export["bills"]), len(export["employees"]), path)
    return export


def save_export(path: str, journals: List[Mapping[str, Any]] = (), bills: List[Mapping[str, Any]] = (),
                employees: List[Mapping[str, Any]] = ()) -> Path:
    """Write QBO-shaped documents (e.g. ``LedgerEntry.to_qbo()``) in the form ``load_export`` reads."""
    atomic_write_json(path, {"JournalEntry": list(journals), "Bill": list(bills), "Employee": list(employees)})
    return Path(path)
