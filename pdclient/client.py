from __future__ import annotations

from typing import List, Optional

from pdclient.config import DEFAULT_BASE_URL, ClientConfig
from pdclient.models import EscalationPolicy, EscalationRule, Extension, ListPage
from pdclient.options import (
    GetEscalationPolicyOptions,
    GetEscalationRuleOptions,
    GetExtensionOptions,
    ListEscalationPoliciesOptions,
    ListExtensionsOptions,
)
from pdclient.resources import DEFAULT_MAX_PAGES, LogFn, Resource, ResourceClient

ESCALATION_POLICIES: Resource[EscalationPolicy] = Resource(
    path="/escalation_policies",
    singular="escalation_policy",
    plural="escalation_policies",
    model=EscalationPolicy,
)
ESCALATION_RULES: Resource[EscalationRule] = Resource(
    path="/escalation_rules",
    singular="escalation_rule",
    plural="escalation_rules",
    model=EscalationRule,
)
EXTENSIONS: Resource[Extension] = Resource(
    path="/extensions",
    singular="extension",
    plural="extensions",
    model=Extension,
)


def _rules_of(policy_id: str) -> Resource[EscalationRule]:
    return ESCALATION_RULES.under(ESCALATION_POLICIES, policy_id)


class PagerDutyClient(ResourceClient):
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        auth_scheme: str = "token",
        from_email: Optional[str] = None,
        logger: Optional[LogFn] = None,
        *,
        config: Optional[ClientConfig] = None,
    ):
        """Build from individual settings, or from a ready ``config`` which then takes precedence."""
        if config is None:
            config = ClientConfig(
                token=token or "",
                base_url=base_url,
                timeout=timeout,
                auth_scheme=auth_scheme,
                from_email=from_email,
            )
        super().__init__(config, logger=logger)

    @classmethod
    def from_env(cls, logger: Optional[LogFn] = None) -> "PagerDutyClient":
        return cls(config=ClientConfig.from_env(), logger=logger)

    # Escalation policies

    def list_escalation_policies(self, options: Optional[ListEscalationPoliciesOptions] = None, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> ListPage[EscalationPolicy]:
        return self.list_page(ESCALATION_POLICIES, options, timeout=timeout, logger=logger)

    def list_escalation_policies_all(self, options: Optional[ListEscalationPoliciesOptions] = None, *, page_size: Optional[int] = None, max_pages: Optional[int] = DEFAULT_MAX_PAGES, max_items: Optional[int] = None, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> List[EscalationPolicy]:
        return self.list_all(ESCALATION_POLICIES, options, page_size=page_size, max_pages=max_pages, max_items=max_items, timeout=timeout, logger=logger)

    def create_escalation_policy(self, policy: EscalationPolicy, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> EscalationPolicy:
        return self.create(ESCALATION_POLICIES, policy, timeout=timeout, logger=logger)

    def get_escalation_policy(self, policy_id: str, options: Optional[GetEscalationPolicyOptions] = None, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> EscalationPolicy:
        return self.get(ESCALATION_POLICIES, policy_id, options, timeout=timeout, logger=logger)

    def update_escalation_policy(self, policy_id: str, policy: EscalationPolicy, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> EscalationPolicy:
        return self.update(ESCALATION_POLICIES, policy_id, policy, timeout=timeout, logger=logger)

    def delete_escalation_policy(self, policy_id: str, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> None:
        """Delete a policy together with its rules."""
        self.delete(ESCALATION_POLICIES, policy_id, timeout=timeout, logger=logger)

    # Escalation rules, always addressed through their parent policy

    def list_escalation_rules(self, policy_id: str, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> ListPage[EscalationRule]:
        return self.list_page(_rules_of(policy_id), timeout=timeout, logger=logger)

    def create_escalation_rule(self, policy_id: str, rule: EscalationRule, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> EscalationRule:
        """Create a rule; the API appends it after the policy's existing rules."""
        return self.create(_rules_of(policy_id), rule, timeout=timeout, logger=logger)

    def get_escalation_rule(self, policy_id: str, rule_id: str, options: Optional[GetEscalationRuleOptions] = None, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> EscalationRule:
        return self.get(_rules_of(policy_id), rule_id, options, timeout=timeout, logger=logger)

    def update_escalation_rule(self, policy_id: str, rule_id: str, rule: EscalationRule, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> EscalationRule:
        return self.update(_rules_of(policy_id), rule_id, rule, timeout=timeout, logger=logger)

    def delete_escalation_rule(self, policy_id: str, rule_id: str, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> None:
        self.delete(_rules_of(policy_id), rule_id, timeout=timeout, logger=logger)

    # Extensions

    def list_extensions(self, options: Optional[ListExtensionsOptions] = None, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> ListPage[Extension]:
        return self.list_page(EXTENSIONS, options, timeout=timeout, logger=logger)

    def list_extensions_all(self, options: Optional[ListExtensionsOptions] = None, *, page_size: Optional[int] = None, max_pages: Optional[int] = DEFAULT_MAX_PAGES, max_items: Optional[int] = None, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> List[Extension]:
        return self.list_all(EXTENSIONS, options, page_size=page_size, max_pages=max_pages, max_items=max_items, timeout=timeout, logger=logger)

    def create_extension(self, extension: Extension, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> Extension:
        return self.create(EXTENSIONS, extension, timeout=timeout, logger=logger)

    def get_extension(self, extension_id: str, options: Optional[GetExtensionOptions] = None, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> Extension:
        return self.get(EXTENSIONS, extension_id, options, timeout=timeout, logger=logger)

    def update_extension(self, extension_id: str, extension: Extension, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> Extension:
        return self.update(EXTENSIONS, extension_id, extension, timeout=timeout, logger=logger)

    def delete_extension(self, extension_id: str, *, timeout: Optional[float] = None, logger: Optional[LogFn] = None) -> None:
        self.delete(EXTENSIONS, extension_id, timeout=timeout, logger=logger)
