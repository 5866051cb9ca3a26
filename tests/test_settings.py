from __future__ import annotations

import pytest

from src.app.settings import MAX_NEW_CARDS_LIMIT, AppSettings


@pytest.fixture(autouse=True)
def _bot_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:token")
    monkeypatch.delenv("STUDY_NEW_CARDS_LIMIT", raising=False)


def test_from_env_uses_default_new_card_limit() -> None:
    settings = AppSettings.from_env()

    assert settings.telegram_bot_token == "123:token"
    assert settings.new_cards_limit == 20


def test_from_env_reads_new_card_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDY_NEW_CARDS_LIMIT", "35")

    assert AppSettings.from_env().new_cards_limit == 35


@pytest.mark.parametrize("raw", ["0", str(MAX_NEW_CARDS_LIMIT + 1), "many"])
def test_from_env_rejects_invalid_new_card_limit(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("STUDY_NEW_CARDS_LIMIT", raw)

    with pytest.raises(RuntimeError):
        AppSettings.from_env()


def test_from_env_requires_bot_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN")

    with pytest.raises(RuntimeError):
        AppSettings.from_env()
