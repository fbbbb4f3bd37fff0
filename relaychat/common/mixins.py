"""
Mixins for common functionality.
"""

from __future__ import annotations

from typing import Any


class Configurable:
    """
    Keyword overrides backed by an upper-case config object.

    `server_port=` on the instance defaults to `config.SERVER_PORT`, and so on.
    """

    def apply_overrides(
        self,
        overrides: dict[str, Any],
        config_obj: Any,
        attr_list: list[str] | None = None,
    ) -> None:
        """
        Set each attribute in attr_list from overrides or from config_obj.

        A missing or None override takes the config value. Names outside
        attr_list raise TypeError, like an unexpected keyword argument.

        Args:
            overrides: Dictionary of override values
            config_obj: Configuration object with uppercase attribute names
            attr_list: List of attribute names to set
        """
        if attr_list is None:
            attr_list = []

        unknown = set(overrides) - set(attr_list)
        if unknown:
            msg = f"Unknown configuration overrides: {', '.join(sorted(unknown))}"
            raise TypeError(msg)

        for attr in attr_list:
            value = overrides.get(attr)
            if value is None:
                value = getattr(config_obj, attr.upper(), None)
            setattr(self, attr, value)
