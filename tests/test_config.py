from __future__ import annotations

import pytest

from nft_lottery.config import Settings
from nft_lottery.errors import ConfigurationMissing


def test_from_env_collects_per_chain_credentials():
    env = {
        "DEPLOYMENTS": "base  polygon\nmainnet",
        "RPC_8453": "https://base.example",
        "PK_8453": "0xkey",
        "RPC_137": " https://polygon.example ",
        "RPC_": "ignored",
        "PK_abc": "ignored",
        "TICK_INTERVAL_SECONDS": "15",
    }
    settings = Settings.from_env(env)

    assert settings.chains == ("base", "polygon", "mainnet")
    assert settings.rpc_urls == {8453: "https://base.example", 137: "https://polygon.example"}
    assert settings.private_keys == {8453: "0xkey"}
    assert settings.tick_interval_s == 15.0
    assert settings.deployments_dir == "deployments"
    assert settings.next_task is None


def test_credentials_for_requires_both():
    settings = Settings(rpc_urls={1: "https://rpc"}, private_keys={2: "0xk"})

    with pytest.raises(ConfigurationMissing, match="PK_1"):
        settings.credentials_for(1)
    with pytest.raises(ConfigurationMissing, match="RPC_2"):
        settings.credentials_for(2)
    assert settings.rpc_url_for(1) == "https://rpc"


def test_credentials_never_repr_secrets():
    settings = Settings(rpc_urls={1: "https://rpc/?key=s3cret"}, private_keys={1: "0xdeadkey"})
    creds = settings.credentials_for(1)
    assert creds.private_key == "0xdeadkey"
    assert "0xdeadkey" not in repr(creds)
    assert "s3cret" not in repr(creds)
    assert "0xdeadkey" not in repr(settings)


def test_deployments_override_wins():
    settings = Settings.from_env({"DEPLOYMENTS": "base"}, deployments_override="arbitrum")
    assert settings.chains == ("arbitrum",)


def test_bad_number_is_reported():
    with pytest.raises(RuntimeError, match="TICK_BUDGET_SECONDS"):
        Settings.from_env({"TICK_BUDGET_SECONDS": "soon"})


def test_from_env_reads_dotenv(tmp_path, monkeypatch):
    for key in ("DEPLOYMENTS", "RPC_10", "PK_10", "NEXT_TASK"):
        # setenv first so teardown removes whatever .env loads
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    (tmp_path / ".env").write_text(
        "DEPLOYMENTS=optimism\nRPC_10=https://op.example\nPK_10=0xabc\n"
        'NEXT_TASK={"calldata":"0x01"}\n',
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    settings = Settings.from_env()

    assert settings.chains == ("optimism",)
    assert settings.credentials_for(10).rpc_url == "https://op.example"
    assert settings.next_task == '{"calldata":"0x01"}'
