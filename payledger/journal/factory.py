"""
Journal factory: dispatches payroll facts to the builder for their
transaction kind and wraps the lines in a LedgerEntry.
"""
import logging
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional

from payledger.core.constants import TransactionKind
from payledger.core.errors import TransactionKindError
from payledger.core.models import LedgerEntry, LedgerLine
from payledger.journal.builders import DEFAULT_BUILDERS, LineBuilder
from payledger.validation.validators import (
    validate_balance,
    validate_date_format,
    validate_document_number,
    validate_line_count,
    validate_transaction_kind,
)

logger = logging.getLogger(__name__)


class JournalFactory:
    """Registry of line builders keyed by transaction kind. Read-only after construction."""

    def __init__(self, builders: Optional[Iterable[LineBuilder]] = None):
        registry = {}
        for builder in (DEFAULT_BUILDERS if builders is None else builders):
            registry[TransactionKind(builder.kind)] = builder
        self._builders = MappingProxyType(registry)

    @property
    def registered_kinds(self) -> List[TransactionKind]:
        return list(self._builders)

    def has_builder(self, kind: Any) -> bool:
        try:
            return TransactionKind(kind) in self._builders
        except ValueError:
            return False

    def builder_for(self, kind: Any) -> LineBuilder:
        kind = validate_transaction_kind(kind)
        if kind not in self._builders:
            raise TransactionKindError(kind.value, [k.value for k in self._builders])
        return self._builders[kind]

    def build_lines(self, kind: Any, facts: Mapping[str, Any], validate: bool = True) -> List[LedgerLine]:
        """Lines only, no balance check. Useful for previews."""
        builder = self.builder_for(kind)
        if validate:
            builder.validate(facts)
        return builder.build_lines(facts)

    def build_entry(self, kind: Any, facts: Mapping[str, Any], date: str, document_number: str,
                    validate: bool = True, extra_lines: Iterable[LedgerLine] = ()) -> LedgerEntry:
        validate_date_format(date, "transaction_date")
        validate_document_number(document_number)
        lines = self.build_lines(kind, facts, validate) + list(extra_lines)
        validate_line_count(lines)
        self.check_balance(lines)
        logger.info("built %s journal %s with %d lines", TransactionKind(kind).value, document_number, len(lines))
        return LedgerEntry(date, document_number, tuple(lines))

    def check_balance(self, lines: Iterable[LedgerLine]) -> bool:
        validate_balance(lines)
        return True
