"""Storage usage aggregation over real temporary trees."""

from __future__ import annotations

import os

import pytest

from storj_farmer.errors import FilesystemError
from storj_farmer.storage import usage
from storj_farmer.storage.usage import StorageSizeAggregator

from tests.factories import make_tree


def _dir_overhead(*paths) -> int:
    return sum(os.lstat(p).st_size for p in paths)


@pytest.fixture
def aggregator():
    return StorageSizeAggregator()


async def test_sums_files_across_levels(aggregator, tmp_path):
    root = tmp_path / "data"
    make_tree(root, {"a.bin": 100, "sub/b.bin": 250, "sub/c.bin": 4096})

    total = await aggregator.measure(root)

    assert total == 100 + 250 + 4096 + _dir_overhead(root, root / "sub")


async def test_empty_directory_is_its_own_overhead(aggregator, tmp_path):
    root = tmp_path / "empty"
    root.mkdir()
    assert await aggregator.measure(root) == _dir_overhead(root)


async def test_missing_path_returns_zero(aggregator):
    assert await aggregator.measure("/does/not/exist") == 0


async def test_root_file_returns_its_size(aggregator, tmp_path):
    f = tmp_path / "blob"
    f.write_bytes(b"y" * 777)
    assert await aggregator.measure(f) == 777


async def test_deep_tree_does_not_recurse(aggregator, tmp_path):
    root = tmp_path / "deep"
    path = root
    for i in range(200):
        path = path / f"d{i}"
    path.mkdir(parents=True)
    (path / "leaf").write_bytes(b"z" * 10)

    total = await aggregator.measure(root)
    assert total > 10


async def test_symlinks_not_followed(aggregator, tmp_path):
    root = tmp_path / "data"
    make_tree(root, {"real.bin": 100})
    outside = tmp_path / "outside"
    make_tree(outside, {"big.bin": 10_000})
    (root / "loop").symlink_to(root, target_is_directory=True)
    (root / "ext").symlink_to(outside, target_is_directory=True)
    (root / "alias.bin").symlink_to(root / "real.bin")

    total = await aggregator.measure(root)

    assert total == 100 + _dir_overhead(root)


async def test_symlinked_root_is_followed(aggregator, tmp_path):
    real = tmp_path / "real"
    make_tree(real, {"a.bin": 100, "sub/b.bin": 250})
    (real / "sub" / "ext").symlink_to(tmp_path, target_is_directory=True)
    link = tmp_path / "data"
    link.symlink_to(real, target_is_directory=True)

    total = await aggregator.measure(link)

    assert total == 100 + 250 + _dir_overhead(real, real / "sub")
    assert total == await aggregator.measure(real)


async def test_dangling_root_symlink_returns_zero(aggregator, tmp_path):
    link = tmp_path / "data"
    link.symlink_to(tmp_path / "missing", target_is_directory=True)
    assert await aggregator.measure(link) == 0


async def test_unreadable_subdirectory_is_skipped(aggregator, tmp_path, monkeypatch):
    root = tmp_path / "data"
    make_tree(root, {"a.bin": 100, "ok/b.bin": 250, "locked/c.bin": 4096})
    locked = str(root / "locked")

    real_scan = usage._scan

    def _scan(path):
        if path == locked:
            raise PermissionError(13, "Permission denied", path)
        return real_scan(path)

    monkeypatch.setattr(usage, "_scan", _scan)

    total = await aggregator.measure(root)

    assert total == 100 + 250 + _dir_overhead(root, root / "ok")


async def test_directory_vanishing_mid_walk_is_skipped(aggregator, tmp_path, monkeypatch):
    root = tmp_path / "data"
    make_tree(root, {"a.bin": 100, "gone/b.bin": 250})
    gone = str(root / "gone")

    real_scan = usage._scan

    def _scan(path):
        if path == gone:
            raise FileNotFoundError(2, "No such file or directory", path)
        return real_scan(path)

    monkeypatch.setattr(usage, "_scan", _scan)

    assert await aggregator.measure(root) == 100 + _dir_overhead(root)


async def test_unreadable_root_raises(aggregator, tmp_path, monkeypatch):
    root = tmp_path / "data"
    root.mkdir()

    def _scan(path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(usage, "_scan", _scan)

    with pytest.raises(FilesystemError) as exc_info:
        await aggregator.measure(root)
    assert exc_info.value.path == str(root)
