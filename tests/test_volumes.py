"""Tests for volume planning and packaging."""
from __future__ import annotations

import io
import zipfile

import pikepdf
import pytest
from conftest import make_pdf

from courtbundler.models import BundleMetadata
from courtbundler.volumes import MANIFEST_NAME, build_manifest, calculate_volumes, create_volume_zip, split_into_volumes, volume_filename

METADATA = BundleMetadata(case_name="Smith v Jones", case_number="AB12C345")


class TestCalculateVolumes:
    def test_four_hundred_pages_at_default_cap(self) -> None:
        volumes = calculate_volumes(400)
        assert [(v.start_page, v.end_page, v.page_count) for v in volumes] == [(0, 349, 350), (350, 399, 50)]

    def test_exact_multiple_has_no_empty_tail(self) -> None:
        assert [v.page_count for v in calculate_volumes(700, 350)] == [350, 350]

    @pytest.mark.parametrize(("total", "cap"), [(1, 1), (10, 3), (351, 350), (1000, 7)])
    def test_volumes_partition_the_bundle(self, total: int, cap: int) -> None:
        volumes = calculate_volumes(total, cap)
        assert sum(v.page_count for v in volumes) == total
        assert all(0 < v.page_count <= cap for v in volumes)
        assert volumes[0].start_page == 0 and volumes[-1].end_page == total - 1
        assert all(a.end_page + 1 == b.start_page for a, b in zip(volumes, volumes[1:]))
        assert [v.number for v in volumes] == list(range(1, len(volumes) + 1))

    def test_empty_bundle(self) -> None:
        assert calculate_volumes(0) == []

    def test_cap_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            calculate_volumes(10, 0)


class TestPackaging:
    def test_manifest_lists_every_range(self) -> None:
        volumes = calculate_volumes(400)
        labels = [f"A{i:03d}" for i in range(1, 401)]
        manifest = build_manifest(METADATA, volumes, 350, labels)
        assert "split into 2 volumes" in manifest
        assert "Volume 1 of 2: pages 1-350 (350 pages) [A001 - A350]" in manifest
        assert "Volume 2 of 2: pages 351-400 (50 pages) [A351 - A400]" in manifest

    def test_volume_filename(self) -> None:
        assert volume_filename(METADATA, 1, 3) == "AB12C345_Smith_v_Jones_Volume_1_of_3.pdf"
        assert volume_filename(BundleMetadata(), 2, 2) == "bundle_Volume_2_of_2.pdf"

    def test_split_and_zip(self) -> None:
        volumes = calculate_volumes(5, 2)
        volume_pdfs = split_into_volumes(make_pdf(5, "src"), volumes, ["A001", "A002", "A003", "A004", "A005"])
        assert len(volume_pdfs) == 3
        page_counts = []
        for data in volume_pdfs:
            with pikepdf.Pdf.open(io.BytesIO(data)) as pdf:
                page_counts.append(len(pdf.pages))
                assert "/PageLabels" in pdf.Root
        assert page_counts == [2, 2, 1]

        archive = create_volume_zip(volume_pdfs, METADATA, "manifest text\n")
        with zipfile.ZipFile(io.BytesIO(archive)) as zipf:
            assert sorted(zipf.namelist()) == sorted([MANIFEST_NAME] + [volume_filename(METADATA, n, 3) for n in (1, 2, 3)])
            assert zipf.read(MANIFEST_NAME) == b"manifest text\n"
