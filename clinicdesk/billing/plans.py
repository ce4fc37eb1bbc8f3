"""Plan catalog.

Static mapping of plan identifiers to entitlement limits and Stripe price
references. Built once at import and exposed read-only; callers must reject
unknown plan identifiers before any side effect (there is no default plan).
"""

from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from clinicdesk import config

UNLIMITED = -1


class PlanConfig(BaseModel):
    """Immutable catalog entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    price: int  # BRL per month
    stripe_price_id: str
    max_patients: int
    max_members: int
    features: tuple[str, ...]
    popular: bool = False


def _build_catalog() -> Mapping[str, PlanConfig]:
    plans = [
        PlanConfig(
            id="individual",
            name="Plano Individual",
            description="Ideal para profissionais autônomos",
            price=97,
            stripe_price_id=config.STRIPE_PRICE_INDIVIDUAL,
            max_patients=15,
            max_members=1,
            features=(
                "Até 15 pacientes",
                "1 membro (você)",
                "Gestão de agenda",
                "Prontuário eletrônico",
                "Lembretes automáticos",
                "Suporte via email",
            ),
        ),
        PlanConfig(
            id="fono_plus",
            name="Plano Fono+",
            description="Para clínicas pequenas e médias",
            price=197,
            stripe_price_id=config.STRIPE_PRICE_FONO_PLUS,
            max_patients=30,
            max_members=3,
            popular=True,
            features=(
                "Até 30 pacientes",
                "Até 3 membros (1 owner + 2 membros)",
                "Gestão de agenda compartilhada",
                "Prontuário eletrônico",
                "Lembretes automáticos",
                "Relatórios básicos",
                "Suporte prioritário",
            ),
        ),
        PlanConfig(
            id="pro",
            name="Plano Pro",
            description="Para clínicas grandes sem limites",
            price=397,
            stripe_price_id=config.STRIPE_PRICE_PRO,
            max_patients=UNLIMITED,
            max_members=UNLIMITED,
            features=(
                "Pacientes ilimitados",
                "Membros ilimitados",
                "Gestão de agenda avançada",
                "Prontuário eletrônico",
                "Lembretes automáticos",
                "Relatórios avançados",
                "Integrações personalizadas",
                "Suporte prioritário 24/7",
                "Treinamento personalizado",
            ),
        ),
    ]
    return MappingProxyType({plan.id: plan for plan in plans})


PLANS: Mapping[str, PlanConfig] = _build_catalog()
PLAN_TYPES: tuple[str, ...] = tuple(PLANS)


def resolve(plan_type: Optional[str]) -> Optional[PlanConfig]:
    """Look up a plan. Returns None for anything not in the catalog."""
    if not isinstance(plan_type, str):
        return None
    return PLANS.get(plan_type)


def list_plans() -> list[PlanConfig]:
    """All catalog entries in display order."""
    return list(PLANS.values())


def get_plan_name(plan_type: str) -> str:
    plan = resolve(plan_type)
    return plan.name if plan else plan_type


def get_plan_price(plan_type: str) -> int:
    plan = resolve(plan_type)
    return plan.price if plan else 0


def get_stripe_price_id(plan_type: str) -> str:
    plan = resolve(plan_type)
    return plan.stripe_price_id if plan else ""
