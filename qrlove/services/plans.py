"""Catálogo de planos (preço em centavos de BRL)."""
from typing import NamedTuple


class Plan(NamedTuple):
    id: int
    name: str
    price: int  # centavos


PLANS: tuple[Plan, ...] = (
    Plan(1, "Anual", 1990),
    Plan(2, "Lifetime", 4990),
)


def get_plan(plan_id: int | str | None) -> Plan | None:
    try:
        pid = int(plan_id)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    for plan in PLANS:
        if plan.id == pid:
            return plan
    return None
