"""Tests for the command-line front end"""
import json
from unittest.mock import AsyncMock, patch

import pytest

from rocketcart import cli
from rocketcart.cart.service import open_session
from rocketcart.config import Settings
from rocketcart.errors import ConfigurationError


@pytest.fixture
def run_cli(inventory, storage, notifier):
    """Run cli.main against the fake inventory and in-memory store"""
    def _session_factory(settings=None):
        return open_session(settings, inventory=inventory, storage=storage, notifier=notifier)

    def _run(*argv, settings=None):
        with patch.object(cli, "open_session", _session_factory), \
                patch.object(cli, "get_settings", return_value=settings or Settings()), \
                patch.object(cli, "load_dotenv"):
            return cli.main(list(argv))

    return _run


def test_show_empty_cart(run_cli, capsys):
    assert run_cli("show") == 0

    assert capsys.readouterr().out.strip() == "Your cart is empty"


def test_add_and_show(run_cli, capsys):
    assert run_cli("add", "1") == 0
    assert run_cli("add", "1") == 0
    assert run_cli("add", "3") == 0

    out = capsys.readouterr().out.strip().splitlines()
    assert out[-3:] == [
        "#1 Tênis de Caminhada Leve Confortável x2",
        "#3 Tênis Adidas Duramo Lite 2.0 x1",
        "3 item(s) in cart",
    ]


def test_json_output(run_cli, capsys, seed_cart):
    seed_cart((2, 3))

    assert run_cli("set", "2", "4", "--json") == 0

    data = json.loads(capsys.readouterr().out)
    assert [(item["id"], item["amount"]) for item in data] == [(2, 4)]
    assert data[0]["price"] == 139.9


def test_rejection_exits_with_error(run_cli, capsys, seed_cart):
    seed_cart((3, 2))

    assert run_cli("add", "3") == 1

    captured = capsys.readouterr()
    assert "Requested quantity out of stock" in captured.err
    assert "#3 Tênis Adidas Duramo Lite 2.0 x2" in captured.out


def test_silent_rejection_shows_kind(run_cli, capsys, seed_cart):
    seed_cart((1, 1))

    assert run_cli("set", "1", "0") == 1

    assert "invalid_amount_requested" in capsys.readouterr().err


def test_remove(run_cli, capsys, seed_cart, stored_cart):
    seed_cart((1, 1), (2, 1))

    assert run_cli("remove", "1") == 0

    assert [item["id"] for item in stored_cart()] == [2]


def test_localized_output(run_cli, capsys):
    assert run_cli("show", settings=Settings(language="pt")) == 0

    assert capsys.readouterr().out.strip() == "Seu carrinho está vazio"


def test_invalid_arguments(run_cli):
    with pytest.raises(SystemExit):
        run_cli("set", "1")


def test_invalid_environment_exits_with_2(capsys):
    with patch.object(cli, "get_settings", side_effect=ConfigurationError("CART_STORAGE must be one of memory, file, redis")), \
            patch.object(cli, "load_dotenv"):
        assert cli.main(["show"]) == 2

    assert "CART_STORAGE must be one of" in capsys.readouterr().err


def test_unconfigured_backend_exits_with_2(capsys):
    settings = Settings(notifier_backend="telegram")
    with patch.object(cli, "get_settings", return_value=settings), patch.object(cli, "load_dotenv"):
        assert cli.main(["show"]) == 2

    assert "TELEGRAM_CHAT_ID" in capsys.readouterr().err


def test_other_value_errors_are_not_reported_as_configuration(run_cli):
    with patch.object(cli, "run_command", AsyncMock(side_effect=ValueError("unexpected"))):
        with pytest.raises(ValueError, match="unexpected"):
            run_cli("add", "1")
