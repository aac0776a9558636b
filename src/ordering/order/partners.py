"""Partner commission terms, looked up once when an order is placed.

The directory is a read-only collaborator: placement snapshots the rate onto
each partner sub-order, so later rate changes never reach existing orders.

Provides get_partner_directory() / set_partner_directory() to swap the
lookup used by order placement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from protean.exceptions import ValidationError

DEFAULT_COMMISSION_RATE = 10.0
MAX_COMMISSION_RATE = 50.0


@dataclass(frozen=True)
class PartnerTerms:
    """A partner's display name and commission rate (percent) at a point in time."""

    name: str
    commission_rate: float


class PartnerDirectory(ABC):
    """Read-only lookup of partner commission terms."""

    @abstractmethod
    def terms_for(self, partner_id: str) -> PartnerTerms:
        """Return the partner's current terms."""
        ...


class InMemoryPartnerDirectory(PartnerDirectory):
    """Partner terms held in memory. Unknown partners get the default rate."""

    def __init__(self, default_rate: float = DEFAULT_COMMISSION_RATE) -> None:
        self.default_rate = default_rate
        self._partners: dict[str, PartnerTerms] = {}

    def register(self, partner_id: str, name: str, commission_rate: float) -> None:
        if not 0 <= commission_rate <= MAX_COMMISSION_RATE:
            raise ValidationError(
                {"commission_rate": [f"Commission rate must be between 0 and {MAX_COMMISSION_RATE}"]}
            )
        self._partners[str(partner_id)] = PartnerTerms(name=name, commission_rate=commission_rate)

    def terms_for(self, partner_id: str) -> PartnerTerms:
        terms = self._partners.get(str(partner_id))
        if terms is None:
            return PartnerTerms(name=str(partner_id), commission_rate=self.default_rate)
        return terms


_current_directory: PartnerDirectory | None = None


def get_partner_directory() -> PartnerDirectory:
    """Return the current partner directory. Defaults to an empty in-memory one."""
    global _current_directory
    if _current_directory is None:
        _current_directory = InMemoryPartnerDirectory()
    return _current_directory


def set_partner_directory(directory: PartnerDirectory) -> None:
    """Override the active partner directory (useful for tests)."""
    global _current_directory
    _current_directory = directory


def reset_partner_directory() -> None:
    """Reset to the default directory."""
    global _current_directory
    _current_directory = None
