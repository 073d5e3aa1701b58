"""Rule-based detection of recurring subscriptions from transaction history."""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from billsync.models.subscription import Frequency
from billsync.models.transaction import TransactionType
from billsync.schemas.subscription import DetectionResult

logger = logging.getLogger(__name__)

MIN_TRANSACTIONS = 2
AMOUNT_TOLERANCE = Decimal("1.00")
MIN_CONFIDENCE = 0.6

# Inclusive day ranges for the mean interval, and the canonical period used for scoring
FREQUENCY_BANDS: List[Tuple[Frequency, float, float, int]] = [
    (Frequency.weekly, 6, 8, 7),
    (Frequency.monthly, 28, 32, 30),
    (Frequency.yearly, 360, 370, 365),
]

# Fixed day offsets, not calendar months
NEXT_BILLING_OFFSET_DAYS: Dict[Frequency, int] = {
    Frequency.weekly: 7,
    Frequency.monthly: 30,
    Frequency.yearly: 365,
}

KNOWN_SUBSCRIPTION_MERCHANTS = [
    "netflix", "spotify", "apple", "amazon prime", "disney+", "disney plus",
    "adobe", "microsoft", "hulu", "hbo", "youtube premium", "youtube music",
    "gym", "fitness", "planet fitness", "anytime fitness",
    "dropbox", "google one", "icloud", "onedrive",
    "audible", "kindle", "paramount+", "peacock",
    "stan", "binge", "kayo", "foxtel", "optus sport",
]

WEEKS_PER_MONTH = Decimal("4.33")
MONTHS_PER_YEAR = Decimal("12")


def merchant_key(name: Optional[str]) -> str:
    """Case-insensitive, whitespace-trimmed merchant identity."""
    return (name or "").strip().lower()


def is_known_subscription_merchant(name: str) -> bool:
    name_lower = name.lower()
    return any(known in name_lower for known in KNOWN_SUBSCRIPTION_MERCHANTS)


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def classify_interval(mean_interval: float) -> Optional[Tuple[Frequency, int]]:
    """Return (frequency, canonical period) for a mean interval, or None when out of band."""
    for frequency, low, high, canonical in FREQUENCY_BANDS:
        if low <= mean_interval <= high:
            return frequency, canonical
    return None


def calculate_next_billing_date(last_date: date, frequency: Frequency) -> date:
    """Calculate the next billing date as a fixed day offset from the last charge."""
    return last_date + timedelta(days=NEXT_BILLING_OFFSET_DAYS[frequency])


def calculate_confidence(
    mean_interval: float,
    canonical_period: int,
    merchant_name: str,
    transaction_count: int
) -> float:
    interval_confidence = 1 - abs(mean_interval - canonical_period) / canonical_period

    confidence = interval_confidence * 0.6 + 0.4
    if is_known_subscription_merchant(merchant_name):
        confidence += 0.2
    if transaction_count >= 3:
        confidence += 0.1
    return min(confidence, 1.0)


def analyze_pattern(transactions: List[Any]) -> Optional[DetectionResult]:
    """
    Analyze one merchant's transactions for a recurring billing pattern.

    Returns None when there are too few charges, amounts drift by more than
    the tolerance, or the mean interval falls outside every frequency band.
    """
    if len(transactions) < MIN_TRANSACTIONS:
        return None

    ordered = sorted(transactions, key=lambda t: _to_date(t.transaction_date))
    dates = [_to_date(t.transaction_date) for t in ordered]

    intervals = [(dates[i] - dates[i - 1]).days for i in range(1, len(dates))]
    mean_interval = sum(intervals) / len(intervals)

    amounts = [_to_decimal(t.amount) for t in ordered]
    mean_amount = sum(amounts) / len(amounts)
    if any(abs(amount - mean_amount) > AMOUNT_TOLERANCE for amount in amounts):
        return None

    band = classify_interval(mean_interval)
    if band is None:
        return None
    frequency, canonical_period = band

    merchant_name = ordered[0].merchant_name.strip()

    return DetectionResult(
        merchant_name=merchant_name,
        average_amount=mean_amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        frequency=frequency,
        next_billing_date=calculate_next_billing_date(dates[-1], frequency),
        confidence=calculate_confidence(mean_interval, canonical_period, merchant_name, len(ordered)),
    )


def detect_subscriptions(
    transactions: Iterable[Any],
    existing_subscriptions: Iterable[Any] = ()
) -> List[DetectionResult]:
    """
    Detect recurring subscriptions from transaction history.

    Accepts anything shaped like a transaction (ORM rows or normalized
    schemas) and anything with a ``merchant_name`` for the already tracked
    subscriptions. Merchants already tracked are never proposed again.
    Results with confidence below 0.6 are dropped; the rest are ordered by
    confidence, then by average amount, both descending.
    """
    groups: Dict[str, List[Any]] = defaultdict(list)
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        groups[merchant_key(txn.merchant_name)].append(txn)

    tracked = {merchant_key(sub.merchant_name) for sub in existing_subscriptions}

    detected: List[DetectionResult] = []
    for key, group in groups.items():
        if key in tracked:
            continue
        result = analyze_pattern(group)
        if result is not None:
            detected.append(result)

    accepted = [d for d in detected if d.confidence >= MIN_CONFIDENCE]
    accepted.sort(key=lambda d: (d.confidence, d.average_amount), reverse=True)

    logger.debug(
        "Detected %d subscriptions from %d merchant groups", len(accepted), len(groups)
    )
    return accepted


def calculate_monthly_cost(subscriptions: Iterable[Any]) -> Decimal:
    """
    Calculate the total monthly cost of active subscriptions.

    Weekly amounts are scaled by 4.33, yearly amounts divided by 12. A
    subscription counts as active unless ``is_active`` is explicitly False.
    Accepts ORM rows, schemas or plain dicts.
    """
    total = Decimal("0")
    for sub in subscriptions:
        if isinstance(sub, dict):
            is_active = sub.get("is_active")
            amount = sub["amount"]
            frequency = sub["frequency"]
        else:
            is_active = getattr(sub, "is_active", None)
            amount = sub.amount
            frequency = sub.frequency

        if is_active is False:
            continue

        monthly_amount = _to_decimal(amount)
        if frequency == Frequency.weekly:
            monthly_amount = monthly_amount * WEEKS_PER_MONTH
        elif frequency == Frequency.yearly:
            monthly_amount = monthly_amount / MONTHS_PER_YEAR

        total += monthly_amount
    return total
