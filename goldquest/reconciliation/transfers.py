"""
Transfer Reconciliation

Reconstructs transfers from the flat list of transactions. A transfer is
never stored as such: it is two transactions in the transfer category,
one leaving an account and one arriving in another.

Pairing rules, for each outgoing leg O (amount < 0) in input order,
an incoming candidate I must have:
- I.amount == -O.amount
- a different account
- the same date and currency
- the same description, OR both descriptions starting with the
  transfer prefix (disabled in strict mode)
- not already been paired

Among the candidates the lexicographically smallest ID wins.

DESIGN DECISION: This is a pure function of its input. The same set of
transactions always yields the same pairs, so the result can be
recomputed on every read or memoized (see TransferReconciler).

The prefix rule means two unrelated same-day transfers of the same
amount between different accounts may pair with the wrong partner.
Strict mode trades that for requiring identical descriptions.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

from goldquest.config import LedgerSettings, get_settings
from goldquest.logging_config import get_logger
from goldquest.models import Transaction, TransferPair, TransferReconciliation


logger = get_logger(__name__)


def _descriptions_match(
    outgoing: Transaction,
    incoming: Transaction,
    strict: bool,
    prefix: str,
) -> bool:
    if outgoing.description == incoming.description:
        return True
    if strict or not prefix:
        return False
    return outgoing.description.startswith(prefix) and incoming.description.startswith(prefix)


def is_matching_leg(
    outgoing: Transaction,
    incoming: Transaction,
    strict: bool = False,
    prefix: str = "Transfer",
) -> bool:
    """True if `incoming` can be the other side of `outgoing`."""
    return (
        incoming.amount == -outgoing.amount
        and incoming.account_id != outgoing.account_id
        and incoming.date == outgoing.date
        and incoming.currency == outgoing.currency
        and _descriptions_match(outgoing, incoming, strict, prefix)
    )


def find_transfer_pairs(
    transactions: Iterable[Transaction],
    strict_descriptions: Optional[bool] = None,
    settings: Optional[LedgerSettings] = None,
) -> TransferReconciliation:
    """
    Pair transfer legs.

    Args:
        transactions: Transactions in store order (any accounts, any categories)
        strict_descriptions: Require identical descriptions.
                             Defaults to LedgerSettings.strict_transfer_descriptions.
        settings: Ledger settings (category name and description prefix)

    Returns:
        Pairs sorted by outgoing date, newest first, plus every
        transfer-categorized transaction left unpaired, in input order.
    """
    settings = settings or get_settings().ledger
    strict = (
        settings.strict_transfer_descriptions
        if strict_descriptions is None
        else strict_descriptions
    )
    prefix = settings.transfer_description_prefix

    transfers = [tx for tx in transactions if tx.has_category(settings.transfer_category)]
    outgoing_legs = [tx for tx in transfers if tx.amount < 0]
    incoming_legs = [tx for tx in transfers if tx.amount >= 0]

    consumed: set[str] = set()
    pairs: list[TransferPair] = []

    for outgoing in outgoing_legs:
        if outgoing.id in consumed:
            continue

        candidates = [
            incoming
            for incoming in incoming_legs
            if incoming.id not in consumed
            and is_matching_leg(outgoing, incoming, strict, prefix)
        ]
        if not candidates:
            continue

        partner = min(candidates, key=lambda tx: tx.id)
        consumed.add(outgoing.id)
        consumed.add(partner.id)
        pairs.append(TransferPair(from_leg=outgoing, to_leg=partner))

    # sort() is stable, so same-date pairs keep their discovery order
    pairs.sort(key=lambda pair: pair.from_leg.date, reverse=True)

    unpaired = [tx for tx in transfers if tx.id not in consumed]

    logger.debug(
        "transfers_reconciled",
        transfer_count=len(transfers),
        pair_count=len(pairs),
        unpaired_count=len(unpaired),
        strict=strict,
    )

    return TransferReconciliation(pairs=pairs, unpaired=unpaired)


class TransferReconciler:
    """
    Memoizes find_transfer_pairs for an unchanged transaction set.

    The fingerprint is the ordered (id, updated_at) of every input
    transaction. The ledger restamps updated_at on every write, so any
    mutation through the ledger invalidates the memo.
    """

    def __init__(
        self,
        strict_descriptions: Optional[bool] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._strict_descriptions = strict_descriptions
        self._settings = settings
        self._fingerprint: Optional[tuple[tuple[str, datetime], ...]] = None
        self._result: Optional[TransferReconciliation] = None
        self.hits = 0
        self.misses = 0

    @staticmethod
    def fingerprint(transactions: Sequence[Transaction]) -> tuple[tuple[str, datetime], ...]:
        return tuple((tx.id, tx.updated_at) for tx in transactions)

    def reconcile(self, transactions: Sequence[Transaction]) -> TransferReconciliation:
        key = self.fingerprint(transactions)
        if self._result is not None and key == self._fingerprint:
            self.hits += 1
            return self._result

        self.misses += 1
        self._result = find_transfer_pairs(
            transactions,
            strict_descriptions=self._strict_descriptions,
            settings=self._settings,
        )
        self._fingerprint = key
        return self._result

    def clear(self) -> None:
        self._fingerprint = None
        self._result = None
