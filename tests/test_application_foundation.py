"""Unit tests for principal context, contributions and entry-point discovery."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from callsheet.foundation.application.context import (
    NoRequestContextError,
    clear_principal_context,
    get_current_principal,
    get_optional_principal,
    set_principal_context,
)
from callsheet.foundation.application.contributions import (
    LifespanContribution,
    MiddlewareContribution,
)
from callsheet.foundation.application.discovery import DiscoveredContribution, discover
from callsheet.foundation.domain.principal import Principal, Role


class TestPrincipalContext:
    @pytest.mark.unit
    def test_no_context_raises(self) -> None:
        with pytest.raises(NoRequestContextError):
            get_current_principal()
        assert get_optional_principal() is None

    @pytest.mark.unit
    def test_set_and_clear(self) -> None:
        principal = Principal(subject="talent-1", role=Role.TALENT)
        token = set_principal_context(principal)
        try:
            assert get_current_principal() is principal
        finally:
            clear_principal_context(token)
        assert get_optional_principal() is None


class TestMiddlewareContribution:
    @pytest.mark.unit
    def test_defaults(self) -> None:
        contrib = MiddlewareContribution(middleware_class=object)
        assert contrib.priority == 400
        assert contrib.kwargs == {}

    @pytest.mark.unit
    @pytest.mark.parametrize("priority", [-1, 500])
    def test_priority_out_of_range(self, priority: int) -> None:
        with pytest.raises(ValueError, match="between 0 and 499"):
            MiddlewareContribution(middleware_class=object, priority=priority)

    @pytest.mark.unit
    def test_lifespan_default_priority(self) -> None:
        assert LifespanContribution(hook=lambda app: None).priority == 500


def _entry_point(name: str, value: object = None, error: Exception | None = None) -> MagicMock:
    ep = MagicMock()
    ep.name = name
    if error is not None:
        ep.load.side_effect = error
    else:
        ep.load.return_value = value
    return ep


class TestDiscover:
    @pytest.mark.unit
    def test_empty_group_returns_empty_list(self) -> None:
        assert discover("callsheet.nonexistent.group.for.testing") == []

    @pytest.mark.unit
    def test_sorted_by_name_and_excludes(self) -> None:
        eps = [_entry_point("zeta", 1), _entry_point("alpha", 2), _entry_point("skip", 3)]
        with patch(
            "callsheet.foundation.application.discovery.entry_points", return_value=eps
        ):
            result = discover("callsheet.routers", exclude_names=frozenset({"skip"}))

        assert result == [
            DiscoveredContribution(name="alpha", group="callsheet.routers", value=2),
            DiscoveredContribution(name="zeta", group="callsheet.routers", value=1),
        ]

    @pytest.mark.unit
    def test_broken_entry_point_is_skipped(self) -> None:
        eps = [_entry_point("broken", error=ImportError("boom")), _entry_point("ok", "value")]
        with patch(
            "callsheet.foundation.application.discovery.entry_points", return_value=eps
        ):
            result = discover("callsheet.routers")

        assert [c.name for c in result] == ["ok"]
