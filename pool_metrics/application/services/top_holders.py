"""Balance reconstruction and ranking for top holders snapshots."""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from pool_metrics.application.dto.top_holders import TopHolder

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_HOLDERS = 20


@dataclass(frozen=True)
class Transfer:
    """Token transfer as reported by the transfers API."""

    from_address: str
    to_address: str
    value: str | float | None


def _amount(value: str | float | None) -> int:
    if value is None:
        return 0
    try:
        return int(Decimal(str(value)).to_integral_value(rounding=ROUND_FLOOR))
    except InvalidOperation:
        return 0


def balance_deltas(transfers: Iterable[Transfer], contract_address: str) -> dict[str, int]:
    """Net balance change per address.

    The zero address and the contract itself are not tracked.
    """
    contract = contract_address.lower()
    skipped = {ZERO_ADDRESS, contract}
    deltas: dict[str, int] = defaultdict(int)

    for transfer in transfers:
        amount = _amount(transfer.value)
        sender = transfer.from_address.lower()
        receiver = transfer.to_address.lower()
        if sender not in skipped:
            deltas[sender] -= amount
        if receiver not in skipped:
            deltas[receiver] += amount

    return dict(deltas)


def apply_deltas(balances: Mapping[str, int], deltas: Mapping[str, int]) -> dict[str, int]:
    """Merge deltas into balances, dropping non-positive results."""
    merged = dict(balances)
    for address, change in deltas.items():
        merged[address] = merged.get(address, 0) + change
    return {address: balance for address, balance in merged.items() if balance > 0}


def rank_holders(
    balances: Mapping[str, int],
    total_supply: int | None,
    limit: int = MAX_HOLDERS,
) -> list[TopHolder]:
    """Top holders by balance, with their share of total supply in percent."""
    ranked = sorted(balances.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return [
        TopHolder(
            address=address,
            balance=str(balance),
            pct=(balance * 10000 // total_supply) / 100 if total_supply else 0.0,
        )
        for address, balance in ranked
    ]
