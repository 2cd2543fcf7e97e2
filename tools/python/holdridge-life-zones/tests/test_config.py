"""Tests for ClassificationConfig and its JSON loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from holdridge_life_zones.config import ClassificationConfig, load_config
from shared.python.exceptions import InputValidationError


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestClassificationConfig:
    def test_defaults(self) -> None:
        config = ClassificationConfig()
        assert config.compute_ecotones is None
        assert config.ecotones_enabled is True
        assert (config.tile_rows, config.tile_cols) == (2048, 2048)
        assert config.max_workers == 1
        assert config.fail_on_unclassified is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"tile_rows": 0},
            {"tile_cols": -3},
            {"max_workers": 0},
            {"tile_rows": 2.5},
            {"max_workers": True},
            {"compute_ecotones": "yes"},
            {"fail_on_unclassified": 1},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(InputValidationError):
            ClassificationConfig(**kwargs)

    def test_ecotone_default_fills_only_unset_value(self) -> None:
        assert ClassificationConfig().with_ecotone_default(False).compute_ecotones is False
        explicit = ClassificationConfig(compute_ecotones=True)
        assert explicit.with_ecotone_default(False) is explicit
        assert ClassificationConfig(compute_ecotones=False).ecotones_enabled is False


class TestLoadConfig:
    def test_full_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {
            "compute_ecotones": False,
            "tile_rows": 256,
            "tile_cols": 512,
            "max_workers": 4,
            "fail_on_unclassified": False,
        })
        assert load_config(path) == ClassificationConfig(
            compute_ecotones=False, tile_rows=256, tile_cols=512,
            max_workers=4, fail_on_unclassified=False,
        )

    def test_partial_file_keeps_defaults(self, tmp_path: Path) -> None:
        config = load_config(_write(tmp_path, {"max_workers": 8}))
        assert config.max_workers == 8
        assert config.tile_rows == 2048

    def test_unknown_key(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError, match="tile_size"):
            load_config(_write(tmp_path, {"tile_size": 10}))

    def test_not_an_object(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError, match="JSON object"):
            load_config(_write(tmp_path, [1, 2]))

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InputValidationError, match="Failed to read"):
            load_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError, match="Failed to read"):
            load_config(tmp_path / "absent.json")

    def test_invalid_value_in_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError, match="tile_rows"):
            load_config(_write(tmp_path, {"tile_rows": 0}))

    def test_absent_ecotone_key_stays_unset(self, tmp_path: Path) -> None:
        assert load_config(_write(tmp_path, {"max_workers": 2})).compute_ecotones is None
        assert load_config(_write(tmp_path, {"compute_ecotones": None})).compute_ecotones is None
