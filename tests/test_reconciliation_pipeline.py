# tests/test_reconciliation_pipeline.py
from unittest.mock import MagicMock, patch

import pytest

from slot_reconciler.exceptions import ConfigurationError, SlotListParseError, SolanaRpcError
from slot_reconciler.reconciliation_pipeline import (
    ReconcilerConfig,
    SlotReconciliationPipeline,
    config_from_env,
)


@pytest.fixture
def config(tmp_path):
    return ReconcilerConfig(rpc_endpoint="https://rpc.example.com", lists_dir=str(tmp_path))


def _write_reference(config, epoch, text):
    path = config.reference_list_path(epoch)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_default_paths(tmp_path):
    config = ReconcilerConfig(lists_dir=str(tmp_path))
    assert config.reference_list_path(5) == tmp_path / "faithful" / "5.slots.txt"
    assert config.remote_cache_path(5) == tmp_path / "solana" / "5.slots.txt-solana"


def test_reference_path_override(tmp_path):
    config = ReconcilerConfig(reference_path=str(tmp_path / "ref.txt"))
    assert config.reference_list_path(5) == tmp_path / "ref.txt"


def test_fetches_caches_and_reconciles(config):
    _write_reference(config, 0, "431999\n10\n5\n")
    source = MagicMock()
    source.get_blocks.side_effect = lambda start, end, commitment: [s for s in (5, 10, 20, 10) if start <= s <= end]

    pipeline = SlotReconciliationPipeline(config, client=source)
    report = pipeline.run(0)

    assert report.only_in_reference == [431999]
    assert report.only_in_remote == [20]
    assert report.identical is False
    assert source.get_blocks.call_count == 432
    assert config.remote_cache_path(0).read_text() == "5\n10\n20\n"
    assert pipeline.stats.cache_written is True
    assert pipeline.stats.windows_fetched == 432
    assert pipeline.stats.blocks_fetched == 4


def test_fetch_starts_one_slot_before_epoch(config):
    _write_reference(config, 1, "432000\n")
    source = MagicMock()
    source.get_blocks.return_value = []

    SlotReconciliationPipeline(config, client=source).run(1)

    first = source.get_blocks.call_args_list[0].args
    last = source.get_blocks.call_args_list[-1].args
    assert first == (431999, 432998, "finalized")
    assert last[1] == 863999


def test_boundary_slot_from_previous_epoch_is_cached_but_ignored(config):
    _write_reference(config, 1, "432000\n")
    source = MagicMock()
    source.get_blocks.side_effect = lambda start, end, commitment: [s for s in (431999, 432000) if start <= s <= end]

    report = SlotReconciliationPipeline(config, client=source).run(1)

    assert report.identical is True
    assert config.remote_cache_path(1).read_text() == "431999\n432000\n"


def test_uses_cache_without_network(config):
    _write_reference(config, 0, "5\n10\n")
    cache = config.remote_cache_path(0)
    cache.parent.mkdir(parents=True)
    cache.write_text("10\n5\n")
    source = MagicMock()

    pipeline = SlotReconciliationPipeline(config, client=source)
    report = pipeline.run(0)

    assert report.identical is True
    source.get_blocks.assert_not_called()
    assert pipeline.stats.used_cache is True


def test_empty_cache_is_refetched(config):
    _write_reference(config, 0, "5\n")
    cache = config.remote_cache_path(0)
    cache.parent.mkdir(parents=True)
    cache.write_text("")
    source = MagicMock()
    source.get_blocks.side_effect = lambda start, end, commitment: [5] if start == 0 else []

    report = SlotReconciliationPipeline(config, client=source).run(0)

    assert report.identical is True
    assert source.get_blocks.called
    assert cache.read_text() == "5\n"


def test_refresh_ignores_cache(config):
    _write_reference(config, 0, "5\n")
    cache = config.remote_cache_path(0)
    cache.parent.mkdir(parents=True)
    cache.write_text("5\n")
    config.refresh_cache = True
    config.page_size = 432000
    source = MagicMock()
    source.get_blocks.return_value = [5, 6]

    report = SlotReconciliationPipeline(config, client=source).run(0)

    source.get_blocks.assert_called_once_with(0, 431999, "finalized")
    assert report.only_in_remote == [6]
    assert cache.read_text() == "5\n6\n"


@pytest.mark.parametrize("contents", [None, ""])
def test_unusable_reference_is_configuration_error(config, contents):
    if contents is not None:
        _write_reference(config, 0, contents)
    source = MagicMock()

    with pytest.raises(ConfigurationError):
        SlotReconciliationPipeline(config, client=source).run(0)

    source.get_blocks.assert_not_called()


def test_missing_endpoint_is_configuration_error(tmp_path):
    config = ReconcilerConfig(rpc_endpoint="", lists_dir=str(tmp_path))
    source = MagicMock()

    with pytest.raises(ConfigurationError):
        SlotReconciliationPipeline(config, client=source).run(0)

    source.get_blocks.assert_not_called()


def test_failed_window_aborts_without_cache(config):
    _write_reference(config, 0, "5\n")
    source = MagicMock()

    def get_blocks(start, end, commitment):
        if start == 1000:
            raise SolanaRpcError(-32004, "Block not available")
        return [start]

    source.get_blocks.side_effect = get_blocks
    pipeline = SlotReconciliationPipeline(config, client=source)

    with pytest.raises(SolanaRpcError):
        pipeline.run(0)

    assert source.get_blocks.call_count == 2
    assert not config.remote_cache_path(0).exists()
    assert pipeline.stats.cache_written is False


def test_corrupt_reference_is_rejected(config):
    _write_reference(config, 0, "5\nnot-a-slot\n")
    cache = config.remote_cache_path(0)
    cache.parent.mkdir(parents=True)
    cache.write_text("5\n")

    with pytest.raises(SlotListParseError):
        SlotReconciliationPipeline(config, client=MagicMock()).run(0)


def test_rpc_client_created_lazily_and_closed(config):
    pipeline = SlotReconciliationPipeline(config)
    with patch("slot_reconciler.reconciliation_pipeline.SolanaRpcClient") as client_cls:
        with pipeline:
            client = pipeline.client
        client_cls.assert_called_once_with(
            endpoint="https://rpc.example.com", timeout=30, max_retries=3
        )
        client.close.assert_called_once()


def test_injected_client_is_not_closed(config):
    source = MagicMock()
    with SlotReconciliationPipeline(config, client=source):
        pass
    source.close.assert_not_called()


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("SOLANA_RPC_URL", "https://env.example.com")
    monkeypatch.setenv("SOLANA_RPC_TIMEOUT", "12")
    monkeypatch.setenv("SLOT_LISTS_DIR", "/tmp/lists")

    config = config_from_env(rpc_timeout=None, page_size=500)

    assert config.rpc_endpoint == "https://env.example.com"
    assert config.rpc_timeout == 12
    assert config.lists_dir == "/tmp/lists"
    assert config.page_size == 500


def test_config_from_env_overrides(monkeypatch):
    monkeypatch.setenv("SOLANA_RPC_URL", "https://env.example.com")

    config = config_from_env(rpc_endpoint="https://flag.example.com")

    assert config.rpc_endpoint == "https://flag.example.com"


def test_processed_commitment_is_configuration_error(config):
    _write_reference(config, 0, "5\n")
    config.commitment = "processed"
    source = MagicMock()

    with pytest.raises(ConfigurationError):
        SlotReconciliationPipeline(config, client=source).run(0)

    source.get_blocks.assert_not_called()


def test_confirmed_commitment_is_passed_through(config):
    _write_reference(config, 0, "5\n")
    config.commitment = "confirmed"
    config.page_size = 432000
    source = MagicMock()
    source.get_blocks.return_value = [5]

    report = SlotReconciliationPipeline(config, client=source).run(0)

    source.get_blocks.assert_called_once_with(0, 431999, "confirmed")
    assert report.identical is True


def test_stats_to_dict(config):
    _write_reference(config, 0, "5\n")
    config.page_size = 432000
    source = MagicMock()
    source.get_blocks.return_value = [5, 5]

    pipeline = SlotReconciliationPipeline(config, client=source)
    pipeline.run(0)

    assert pipeline.stats.to_dict() == {
        "windows_fetched": 1,
        "blocks_fetched": 2,
        "used_cache": False,
        "cache_written": True,
    }
