"""
PartnerRuleSet: the single place partner-specific behavior is looked up.
"""

import os
from pathlib import Path
from typing import Iterator

from edi_canon.core.errors import RuleConfigError
from edi_canon.core.models import PartnerRule

from .rule_config import PartnerRuleLoader

DEFAULT_RULES_PATH = Path(__file__).with_name("partner_rules.yaml")


class PartnerRuleSet:
    """
    Lookup table of partner rules keyed by (company, order type).

    Both key parts are matched case-insensitively and with surrounding
    whitespace ignored.
    """

    def __init__(self, rules: list[PartnerRule]):
        """
        Initialize the rule set.

        Raises:
            RuleConfigError: If two rules share a (company, order type) key
        """
        self._rules: dict[tuple[str, str], PartnerRule] = {}
        for rule in rules:
            if rule.key in self._rules:
                raise RuleConfigError(
                    f"Duplicate partner rule for {rule.company}/{rule.order_type}"
                )
            self._rules[rule.key] = rule

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "PartnerRuleSet":
        return cls(PartnerRuleLoader(config_path).load_rules())

    @classmethod
    def default(cls) -> "PartnerRuleSet":
        """Rules from ``EDI_PARTNER_RULES`` or the packaged partner table."""
        return cls.from_yaml(os.getenv("EDI_PARTNER_RULES") or DEFAULT_RULES_PATH)

    def lookup(self, company: str | None, order_type: str | None) -> PartnerRule | None:
        """Rule for (company, order type), or None when the pair is not configured."""
        if not company or not order_type:
            return None
        return self._rules.get((company.strip().upper(), order_type.strip().upper()))

    def rules_for_company(self, company: str | None) -> list[PartnerRule]:
        if not company:
            return []
        wanted = company.strip().upper()
        return [rule for key, rule in self._rules.items() if key[0] == wanted]

    def order_type_paths(self, company: str | None) -> list[str]:
        """Distinct header paths the company's order types are read from, in rule order."""
        paths: list[str] = []
        for rule in self.rules_for_company(company):
            if rule.po_type_path not in paths:
                paths.append(rule.po_type_path)
        return paths

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[PartnerRule]:
        return iter(self._rules.values())

    def __contains__(self, key: tuple[str, str]) -> bool:
        return self.lookup(*key) is not None
