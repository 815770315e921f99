"""Default auto rules provisioned for a tenant."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from .models import (
    RULE_ATTENDANT_ABSENCE,
    RULE_ATTENDANT_ASSIGNED,
    RULE_AUTO_CLOSE,
    RULE_INACTIVITY_WARNING,
    RULE_INACTIVITY_WARNING_2,
    RULE_TRANSFER_NOTICE,
    RULE_WELCOME,
    AutoRule,
)
from .store import ChatStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleDefault:
    rule_type: str
    enabled: bool
    trigger_minutes: int | None
    content: str


# Trigger minutes all count from the last human message, so the main flow
# defaults are cumulative.
DEFAULT_RULES: tuple[RuleDefault, ...] = (
    RuleDefault(
        RULE_WELCOME,
        True,
        None,
        "Hi! Thanks for getting in touch. An attendant will be with you shortly.",
    ),
    RuleDefault(
        RULE_INACTIVITY_WARNING,
        True,
        10,
        "Are you still there? Let us know if you need anything else.",
    ),
    RuleDefault(
        RULE_INACTIVITY_WARNING_2,
        True,
        20,
        "We haven't heard from you in a while. This chat will close soon.",
    ),
    RuleDefault(
        RULE_AUTO_CLOSE,
        True,
        30,
        "This conversation was closed due to inactivity.",
    ),
    RuleDefault(
        RULE_ATTENDANT_ABSENCE,
        False,
        5,
        "Sorry for the wait, your attendant will reply as soon as possible.",
    ),
    RuleDefault(
        RULE_ATTENDANT_ASSIGNED,
        False,
        None,
        "An attendant has joined the conversation.",
    ),
    RuleDefault(
        RULE_TRANSFER_NOTICE,
        False,
        None,
        "You are being transferred to another attendant.",
    ),
)


def ensure_default_rules(store: ChatStore, tenant_id: UUID) -> list[AutoRule]:
    """Insert every default rule type the tenant does not have yet.

    Existing rules, enabled or not, are left untouched. Returns the rules
    that were created.
    """

    existing = {
        rule.rule_type
        for rule in store.list_auto_rules(
            tenant_id, [d.rule_type for d in DEFAULT_RULES], enabled_only=False
        )
    }
    created: list[AutoRule] = []
    for default in DEFAULT_RULES:
        if default.rule_type in existing:
            continue
        created.append(
            store.insert_auto_rule(
                tenant_id,
                default.rule_type,
                is_enabled=default.enabled,
                trigger_minutes=default.trigger_minutes,
                message_content=default.content,
            )
        )
    if created:
        logger.info(
            "seeded %d default auto rule(s) for tenant %s",
            len(created),
            tenant_id,
            extra={"tenant_id": str(tenant_id)},
        )
    return created
