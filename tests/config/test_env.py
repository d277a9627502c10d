from __future__ import annotations

import pytest

from caseflow.config.env import env_float, env_int, optional_env_var, require_env_vars
from caseflow.config.errors import ConfigurationError, MissingConfigurationError


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)
    assert exc.value.names == ("MISSING_A", "MISSING_B")


def test_optional_env_var_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "  ")
    assert optional_env_var("EXAMPLE_VAR") is None

    monkeypatch.setenv("EXAMPLE_VAR", " node-7 ")
    assert optional_env_var("EXAMPLE_VAR") == "node-7"


def test_numeric_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_INT", raising=False)
    assert env_int("EXAMPLE_INT", 3) == 3

    monkeypatch.setenv("EXAMPLE_INT", "12")
    monkeypatch.setenv("EXAMPLE_FLOAT", "0.25")
    assert env_int("EXAMPLE_INT", 3) == 12
    assert env_float("EXAMPLE_FLOAT", 1.0) == 0.25

    monkeypatch.setenv("EXAMPLE_INT", "twelve")
    with pytest.raises(ConfigurationError, match="EXAMPLE_INT"):
        env_int("EXAMPLE_INT", 3)
