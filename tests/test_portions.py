"""Tests for portion and batch splitting."""
from pathlib import Path

import pytest

from docuploader.models import UploadSettings
from docuploader.orchestrator.models import Batch, Portion
from docuploader.orchestrator.portions import BatchSplitter, PortionScheduler, split_pages


def _files(count):
    return [Path(f"/root/sub/file{i}.txt") for i in range(count)]


def test_split_pages():
    assert list(split_pages(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(split_pages([], 3)) == []
    assert list(split_pages("abc", 5)) == [["a", "b", "c"]]


def test_split_pages_requires_positive_size():
    with pytest.raises(ValueError):
        list(split_pages([1, 2], 0))


class TestPortionScheduler:
    @pytest.mark.parametrize("count,size", [(1, 1), (7, 3), (9, 3), (10, 4), (3, 10)])
    def test_portions_reproduce_file_list(self, count, size):
        files = _files(count)
        portions = PortionScheduler(UploadSettings(portion_size=size, batch_size=0)).split(files)

        joined = [f for p in portions for f in p.documents]
        assert joined == files
        assert len(set(joined)) == len(files)
        assert [p.index for p in portions] == list(range(len(portions)))
        assert all(len(p) == size for p in portions[:-1])
        assert 0 < len(portions[-1]) <= size

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_size_gives_single_portion(self, size):
        files = _files(5)
        portions = PortionScheduler(UploadSettings(portion_size=size)).split(files)
        assert portions == [Portion(index=0, documents=tuple(files))]

    def test_no_files_no_portions(self):
        assert PortionScheduler(UploadSettings(portion_size=2, batch_size=0)).split([]) == []


class TestBatchSplitter:
    def test_batches_reproduce_portion(self):
        portion = Portion(index=0, documents=tuple(_files(5)))
        batches = BatchSplitter(UploadSettings(batch_size=2)).split(portion)

        assert all(isinstance(b, Batch) for b in batches)
        assert [len(b) for b in batches] == [2, 2, 1]
        assert [f for b in batches for f in b.documents] == list(portion.documents)

    def test_discrete_mode_yields_paths(self):
        portion = Portion(index=1, documents=tuple(_files(3)))
        units = BatchSplitter(UploadSettings(batch_size=0)).split(portion)
        assert units == list(portion.documents)

    def test_batch_size_one_still_batches(self):
        portion = Portion(index=0, documents=tuple(_files(2)))
        units = BatchSplitter(UploadSettings(batch_size=1)).split(portion)
        assert units == [Batch(documents=(f,)) for f in portion.documents]
