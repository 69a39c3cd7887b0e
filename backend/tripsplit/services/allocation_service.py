"""
Expense allocator: turns an expense amount into per-participant shares.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Tuple
from tripsplit.core.config import settings
from tripsplit.core.exceptions import BadRequestError

CENT = Decimal("0.01")

Allocation = Tuple[int, Decimal]  # (participant_id, amount)


def require_positive(amount, label: str = "Expense amount") -> Decimal:
    if amount is None or Decimal(amount) <= 0:
        raise BadRequestError(f"{label} must be positive")
    return Decimal(amount)


def allocate_equal(amount: Decimal, participant_ids: List[int]) -> List[Allocation]:
    """
    Split ``amount`` equally across ``participant_ids``.

    Each share is ``amount / N`` rounded half-up to the cent. The remainder
    is not redistributed, so the shares may add up to ``amount`` give or
    take ``N * 0.005``. A share that rounds down to 0.00 is rejected rather than stored.
    """
    amount = require_positive(amount)
    if not participant_ids:
        raise BadRequestError("Cannot split an expense across an empty roster")
    share = (amount / len(participant_ids)).quantize(CENT, rounding=ROUND_HALF_UP)
    if share == 0:
        raise BadRequestError(f"{amount} is too small to split across {len(participant_ids)} participants")
    return [(participant_id, share) for participant_id in participant_ids]


def allocate_explicit(amount: Decimal, splits: Iterable, roster_ids: Iterable[int]) -> List[Allocation]:
    """
    Validate caller-supplied shares and return them unchanged.

    ``splits`` are objects with ``participant_id`` and ``amount``. Every
    participant must be on the roster, appear once, and receive a positive
    amount. The total is compared with ``amount`` only when
    ENFORCE_SPLIT_TOTAL is enabled.
    """
    amount = require_positive(amount)
    roster = set(roster_ids)
    allocations: List[Allocation] = []
    seen = set()
    for split in splits:
        if split.participant_id not in roster:
            raise BadRequestError(f"Participant {split.participant_id} is not a participant of this trip")
        if split.participant_id in seen:
            raise BadRequestError(f"Participant {split.participant_id} appears more than once in splits")
        share = require_positive(split.amount, "Split amount")
        seen.add(split.participant_id)
        allocations.append((split.participant_id, share))

    if settings.ENFORCE_SPLIT_TOTAL:
        total = sum((share for _, share in allocations), Decimal(0))
        if total != Decimal(amount):
            raise BadRequestError(f"Splits total {total} does not match expense amount {amount}")

    return allocations
