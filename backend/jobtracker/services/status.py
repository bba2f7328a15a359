"""
Job Status State Machine

Single source of truth for which status a job may hold and which changes
are legal. Both the create and update paths in the jobs API call into
this module; the UI only uses available_statuses() to pre-filter choices.

States:
    Saved, Applied, Interviewing, Offer   non-terminal base labels
    Rejected                              terminal
    <custom labels>                       non-terminal, per user

Rules:
    - A new job may start in any non-terminal label, never in Rejected.
    - From a non-terminal label any other label is reachable; there is
      no forward-only ordering among the base labels.
    - Once Rejected, the only legal target is Rejected itself.

Labels compare case-insensitively; the stored spelling of an existing
label always wins over the spelling in a request.

Usage:
    catalog = StatusCatalog(user.custom_statuses, max_custom=20)
    target = catalog.find(requested) or requested
    check_transition(job.status, target, is_new_record=False)
    selected, created = catalog.add(target)
"""

from typing import Iterable, List, Optional, Tuple

from jobtracker.errors import StatusLimitExceeded, TerminalStateViolation, ValidationError

BASE_STATUSES: Tuple[str, ...] = ("Saved", "Applied", "Interviewing", "Offer", "Rejected")
TERMINAL_STATUSES = frozenset({"rejected"})
DEFAULT_STATUS = "Saved"
DEFAULT_MAX_CUSTOM_STATUSES = 20
MAX_LABEL_LENGTH = 50


def _key(label: str) -> str:
    return label.strip().casefold()


def is_terminal(status: Optional[str]) -> bool:
    return status is not None and _key(status) in TERMINAL_STATUSES


def same_label(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return _key(a) == _key(b)


def can_transition(current: Optional[str], requested: str, is_new_record: bool) -> bool:
    """
    Decide whether a job may move from `current` to `requested`.

    Args:
        current: Status currently stored (ignored for new records)
        requested: Status the caller wants
        is_new_record: True on the create path

    Returns:
        True if the change is legal
    """
    if is_new_record:
        return not is_terminal(requested)
    if is_terminal(current):
        return same_label(current, requested)
    return True


def check_transition(current: Optional[str], requested: str, is_new_record: bool) -> None:
    """Raise TerminalStateViolation when can_transition() says no."""
    if can_transition(current, requested, is_new_record):
        return
    if is_new_record:
        raise TerminalStateViolation(f'A job cannot be created with status "{requested}".')
    raise TerminalStateViolation(
        f'Cannot change status from "{current}" to "{requested}". '
        f'"{current}" is a final state.'
    )


def available_statuses(current: Optional[str], labels: Iterable[str]) -> List[str]:
    """Labels a job in `current` may be moved to (including staying put)."""
    labels = list(labels)
    if is_terminal(current):
        return [label for label in labels if same_label(label, current)] or [current]
    return labels


def initial_statuses(labels: Iterable[str]) -> List[str]:
    """Labels a brand-new job may be created with."""
    return [label for label in labels if not is_terminal(label)]


def normalize_label(label: str) -> str:
    """Trim and validate a user-supplied status label."""
    cleaned = (label or "").strip()
    if not cleaned:
        raise ValidationError("Status name cannot be empty.")
    if len(cleaned) > MAX_LABEL_LENGTH:
        raise ValidationError(f"Status name must be at most {MAX_LABEL_LENGTH} characters.")
    return cleaned


class StatusCatalog:
    """
    The base labels plus one user's custom labels.

    Adding a label that already exists (ignoring case) selects the
    existing spelling instead of creating a duplicate. The catalog never
    changes when an add fails.

    Attributes:
        custom: Custom labels in creation order
        max_custom: Upper bound on len(custom)
    """

    def __init__(
        self,
        custom: Optional[Iterable[str]] = None,
        max_custom: int = DEFAULT_MAX_CUSTOM_STATUSES,
    ):
        self.custom: List[str] = list(custom or [])
        self.max_custom = max_custom

    @property
    def labels(self) -> List[str]:
        return list(BASE_STATUSES) + self.custom

    def find(self, label: str) -> Optional[str]:
        for existing in self.labels:
            if same_label(existing, label):
                return existing
        return None

    def add(self, label: str) -> Tuple[str, bool]:
        """
        Add a custom label or re-select an existing one.

        Returns:
            (selected label, True if a new label was created)

        Raises:
            ValidationError: blank or over-long label
            StatusLimitExceeded: custom label count already at max_custom
        """
        cleaned = normalize_label(label)
        existing = self.find(cleaned)
        if existing is not None:
            return existing, False

        if len(self.custom) >= self.max_custom:
            raise StatusLimitExceeded(
                f"Cannot add more than {self.max_custom} custom statuses."
            )

        self.custom = self.custom + [cleaned]
        return cleaned, True

    def resolve_for(self, current: Optional[str], requested: str, is_new_record: bool) -> Tuple[str, bool]:
        """
        Resolve a requested status for a job and enforce the transition rule.

        The terminal check runs before a new label would be added, so a
        rejected job can never grow the catalog.

        Returns:
            (label to store, True if the catalog gained a label)
        """
        cleaned = normalize_label(requested)
        target = self.find(cleaned) or cleaned
        check_transition(current, target, is_new_record)
        return self.add(target)
