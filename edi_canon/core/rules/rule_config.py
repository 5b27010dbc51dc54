"""
Partner rule configuration management.

Loads partner rules from YAML files and provides a builder for
assembling rules programmatically (tests, ad hoc partners).
"""

import copy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from edi_canon.core.errors import RuleConfigError
from edi_canon.core.models import PartnerRule

from .resolvers import check_source

SOURCE_FIELDS = ("color_sources", "size_sources", "bom_color_sources", "bom_size_sources")


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_rule(company: str, order_type: str, settings: dict[str, Any]) -> PartnerRule:
    """
    Validate settings into a PartnerRule.

    Raises:
        RuleConfigError: If a setting or value source is invalid
    """
    try:
        rule = PartnerRule(company=company, order_type=order_type, **settings)
    except PydanticValidationError as e:
        raise RuleConfigError(f"Invalid rule for {company}/{order_type}: {e}") from e

    for field_name in SOURCE_FIELDS:
        for source in getattr(rule, field_name):
            try:
                check_source(source)
            except ValueError as e:
                raise RuleConfigError(
                    f"Invalid {field_name} entry for {company}/{order_type}: {e}"
                ) from e
    return rule


class PartnerRuleLoader:
    """
    Loads partner rules from YAML configuration files.

    Expected YAML format:
    ```yaml
    defaults:                 # applied to every rule
      line_id_field: LineItemId

    partners:
      Kohls:
        defaults:             # applied to every Kohls order type
          po_type_path: PurchaseOrderHeader.PurchaseOrder.ReferencePOType
        BULK:
          inner_pack_field: PackSize
          qty_per_inner_pack_field: Pack
        PREPACK:
          component_inherit: [style, sku]
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the rule config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Partner rule file not found: {config_path}")

    def load_rules(self) -> list[PartnerRule]:
        """
        Load and validate partner rules from the YAML file.

        Returns:
            One PartnerRule per (company, order type)

        Raises:
            RuleConfigError: If the YAML is invalid or a rule fails validation
        """
        try:
            with open(self.config_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuleConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not config or "partners" not in config:
            raise RuleConfigError("Configuration file must contain 'partners' section")

        global_defaults = config.get("defaults") or {}
        partners = config["partners"]
        if not isinstance(partners, dict):
            raise RuleConfigError("'partners' must map company codes to order types")

        rules = []
        for company, order_types in partners.items():
            if not isinstance(order_types, dict):
                raise RuleConfigError(f"Order types for company '{company}' must be a mapping")

            company_defaults = _merge(global_defaults, order_types.get("defaults") or {})
            for order_type, settings in order_types.items():
                if order_type == "defaults":
                    continue
                settings = _merge(company_defaults, settings or {})
                rules.append(build_rule(str(company), str(order_type), settings))

        return rules


class PartnerRuleBuilder:
    """
    Programmatically build partner rules (for testing or dynamic partners).
    """

    def __init__(self, **defaults: Any):
        """
        Initialize an empty rule list.

        Args:
            **defaults: Settings applied to every rule added afterwards
        """
        self.defaults = defaults
        self.rules: list[PartnerRule] = []

    def add_partner(self, company: str, order_type: str, **settings: Any) -> "PartnerRuleBuilder":
        """Add a rule for (company, order_type)."""
        self.rules.append(build_rule(company, order_type, _merge(self.defaults, settings)))
        return self

    def add_sdq_partner(self, company: str, order_type: str, **settings: Any) -> "PartnerRuleBuilder":
        """Add a partner whose quantities arrive in SDQ segments."""
        return self.add_partner(company, order_type, quantity_source="sdq", **settings)

    def add_direct_quantity_partner(
        self,
        company: str,
        order_type: str,
        store_path: str,
        quantity_field: str = "Quantity",
        **settings: Any,
    ) -> "PartnerRuleBuilder":
        """Add a partner that ships one quantity per line to a header-level store."""
        return self.add_partner(
            company,
            order_type,
            quantity_source="field",
            store_path=store_path,
            quantity_field=quantity_field,
            **settings,
        )

    def build(self) -> list[PartnerRule]:
        """Build and return the rules."""
        return list(self.rules)
