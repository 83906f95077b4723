"""Tests for the Plaid setup script."""

from unittest.mock import MagicMock, patch

import pytest

from integrations.exceptions import AggregatorAPIError, AggregatorError
from scripts.setup_plaid import main, validate_credentials


@pytest.fixture
def mock_client_cls():
    with patch("scripts.setup_plaid.PlaidClient") as MockCls:
        client = MagicMock()
        client.create_link_token.return_value = "link-sandbox-ok"
        MockCls.return_value = client
        yield MockCls


class TestValidateCredentials:
    def test_builds_client_from_arguments(self, mock_client_cls):
        token = validate_credentials("cid", "secret", "production")

        assert token == "link-sandbox-ok"
        mock_client_cls.assert_called_once_with(
            client_id="cid", secret="secret", environment="production"
        )
        mock_client_cls.return_value.create_link_token.assert_called_once_with("setup-check")

    def test_empty_link_token_fails(self, mock_client_cls):
        mock_client_cls.return_value.create_link_token.return_value = ""
        with pytest.raises(AggregatorError, match="empty link token"):
            validate_credentials("cid", "secret", "sandbox")

    def test_plaid_errors_propagate(self, mock_client_cls):
        mock_client_cls.return_value.create_link_token.side_effect = AggregatorAPIError(
            "bad keys", error_code="INVALID_API_KEYS", status_code=400
        )
        with pytest.raises(AggregatorAPIError):
            validate_credentials("cid", "secret", "sandbox")


class TestMain:
    @pytest.fixture(autouse=True)
    def empty_keychain(self):
        with patch("scripts.setup_plaid.list_credentials", return_value={}) as mock_list:
            yield mock_list

    def test_success_offers_keychain(self, mock_client_cls, capsys):
        answers = iter(["cid", "secret", "1", "y"])
        with (
            patch("builtins.input", lambda _prompt: next(answers)),
            patch("scripts.setup_plaid.set_credential", return_value=True) as mock_set,
        ):
            main([])

        out = capsys.readouterr().out
        assert "PLAID_CLIENT_ID=cid" in out
        assert "PLAID_ENVIRONMENT=sandbox" in out
        assert "PLAID_CLIENT_ID: saved" in out
        mock_set.assert_any_call("PLAID_CLIENT_ID", "cid")
        mock_set.assert_any_call("PLAID_SECRET", "secret")

    def test_keychain_declined(self, mock_client_cls, capsys):
        answers = iter(["cid", "secret", "2", "n"])
        with (
            patch("builtins.input", lambda _prompt: next(answers)),
            patch("scripts.setup_plaid.set_credential") as mock_set,
        ):
            main([])

        assert "PLAID_ENVIRONMENT=production" in capsys.readouterr().out
        mock_set.assert_not_called()

    def test_mentions_keys_already_stored(self, empty_keychain, capsys):
        empty_keychain.return_value = {"PLAID_SECRET": "old", "REDIS_URL": "redis://x"}
        with patch("builtins.input", return_value=""):
            with pytest.raises(SystemExit):
                main([])

        out = capsys.readouterr().out
        assert "Already in keychain: PLAID_SECRET" in out
        assert "REDIS_URL" not in out

    def test_missing_client_id_exits(self, capsys):
        with patch("builtins.input", return_value=""):
            with pytest.raises(SystemExit):
                main([])
        assert "No client_id provided" in capsys.readouterr().out

    def test_validation_failure_exits(self, mock_client_cls, capsys):
        mock_client_cls.return_value.create_link_token.side_effect = AggregatorAPIError(
            "invalid credentials", error_code="INVALID_API_KEYS", status_code=400
        )
        answers = iter(["cid", "bad-secret", "2"])
        with patch("builtins.input", lambda _prompt: next(answers)):
            with pytest.raises(SystemExit):
                main([])
        out = capsys.readouterr().out
        assert "Error: invalid credentials" in out
        assert "INVALID_API_KEYS" in out

    def test_forget_removes_plaid_keys(self, mock_client_cls, capsys):
        with patch(
            "scripts.setup_plaid.delete_credential", side_effect=[True, False]
        ) as mock_delete:
            main(["--forget"])

        assert [c.args[0] for c in mock_delete.call_args_list] == [
            "PLAID_CLIENT_ID",
            "PLAID_SECRET",
        ]
        out = capsys.readouterr().out
        assert "PLAID_CLIENT_ID: removed" in out
        assert "PLAID_SECRET: not stored" in out
        mock_client_cls.assert_not_called()
