"""
Resolve sheet item numbers to remote item references.

Each distinct item number is looked up once. Items that do not exist
remotely and lookups that failed are reported separately, so a caller can
tell "create these first" from "try again later".
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence

from .errors import ValidationError
from .models import BOMLine, Item
from .remote.base import RemoteItemStore

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    lines: List[BOMLine]
    items: Dict[str, Item] = field(default_factory=dict)
    not_found: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.not_found and not self.failures

    def require_resolved(self) -> List[BOMLine]:
        """Return the resolved lines, or raise one error naming every gap."""
        if self.complete:
            return self.lines
        problems = [f"{number}: not found remotely" for number in self.not_found]
        problems.extend(f"{number}: lookup failed ({error})" for number, error in self.failures.items())
        raise ValidationError(problems, message="Item numbers could not be resolved")


def resolve_item_refs(lines: Sequence[BOMLine], item_store: RemoteItemStore) -> ResolutionReport:
    """Fill in item_ref and any blank compared fields from the remote item.

    Lines already carrying an item_ref are left as they are. Returns new line
    objects; the input is not modified.
    """
    report = ResolutionReport(lines=[])

    for number in dict.fromkeys(line.item_number for line in lines if not line.item_ref):
        result = item_store.get_by_number(number)
        if result.is_found:
            report.items[number] = result.item
        elif result.is_not_found:
            report.not_found.append(number)
        else:
            report.failures[number] = str(result.error)

    for line in lines:
        item = report.items.get(line.item_number)
        if line.item_ref or item is None:
            report.lines.append(line)
            continue
        report.lines.append(replace(
            line,
            item_ref=item.ref,
            name=line.name or item.name,
            description=line.description or item.description,
            category=line.category or item.category,
            lifecycle=line.lifecycle or item.lifecycle,
        ))

    if not report.complete:
        logger.warning(
            f"Unresolved items: {len(report.not_found)} not found, {len(report.failures)} failed"
        )
    return report
