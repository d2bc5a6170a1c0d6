"""Billing-rule resolution: branch override, global rule, built-in default."""

from django.conf import settings

from billing.domain.models import BillingRule, RoundingMode
from billing.domain.rules import DEFAULT_BILLING_RULE, effective_billing_rule
from billing.stores.interfaces import SettingsStore


def default_rule_from_settings() -> BillingRule:
    """The last-resort rule, overridable with ``BILLING_DEFAULT_RULE``."""
    configured = getattr(settings, "BILLING_DEFAULT_RULE", None) or {}
    return BillingRule(
        rounding_step=int(configured.get("rounding_step", DEFAULT_BILLING_RULE.rounding_step)),
        rounding_mode=RoundingMode(
            configured.get("rounding_mode", DEFAULT_BILLING_RULE.rounding_mode.value)
        ),
        grace_minutes=int(configured.get("grace_minutes", DEFAULT_BILLING_RULE.grace_minutes)),
    )


class BillingSettingsService:
    """Resolves the billing rule that applies to a branch."""

    def __init__(self, store: SettingsStore, default: BillingRule | None = None) -> None:
        self._store = store
        self._default = default or default_rule_from_settings()

    def get_active_billing_rule(self, branch_id: str | None = None) -> BillingRule:
        branch_rule = self._store.get_billing_rule(branch_id) if branch_id else None
        global_rule = self._store.get_billing_rule(None)
        return effective_billing_rule(branch_rule, global_rule, self._default)
