"""Tests for core domain models."""

from __future__ import annotations

import random
import re

import pytest

from plaza_py.core.models import SessionRecord, Vector3, random_color


class TestRandomColor:
    """Tests for display colour generation."""

    def test_format_is_zero_padded_hex(self) -> None:
        """Test that colours are always seven characters of #rrggbb."""
        rng = random.Random(7)
        for _ in range(200):
            assert re.fullmatch(r"#[0-9a-f]{6}", random_color(rng))

    def test_seeded_rng_is_reproducible(self) -> None:
        """Test that the same seed yields the same colour."""
        assert random_color(random.Random(42)) == random_color(random.Random(42))


class TestSessionRecord:
    """Tests for SessionRecord."""

    @pytest.fixture
    def record(self) -> SessionRecord:
        """Create a sample record."""
        return SessionRecord(id="abc", position=Vector3(1.0, 0.0, -2.5), facing=0.75, color="#12ab34")

    def test_to_dict_uses_wire_names(self, record: SessionRecord) -> None:
        """Test the flat wire representation."""
        assert record.to_dict() == {
            "id": "abc",
            "x": 1.0,
            "y": 0.0,
            "z": -2.5,
            "rotationY": 0.75,
            "color": "#12ab34",
        }

    def test_from_dict_reads_wire_names(self, record: SessionRecord) -> None:
        """Test decoding from the wire representation."""
        decoded = SessionRecord.from_dict(record.to_dict())

        assert decoded.id == "abc"
        assert decoded.position == Vector3(1.0, 0.0, -2.5)
        assert decoded.facing == 0.75
        assert decoded.color == "#12ab34"

    def test_from_dict_missing_coordinate(self) -> None:
        """Test that a missing coordinate raises KeyError."""
        with pytest.raises(KeyError):
            SessionRecord.from_dict({"id": "abc", "x": 1, "y": 2})

    def test_color_is_immutable(self, record: SessionRecord) -> None:
        """Test that the colour cannot be reassigned after creation."""
        with pytest.raises(AttributeError):
            record.color = "#000000"
        assert record.color == "#12ab34"

    def test_pose_is_mutable(self, record: SessionRecord) -> None:
        """Test that position and facing can be overwritten."""
        record.position = Vector3(5.0, 1.0, 5.0)
        record.facing = 3.0

        assert record.position.x == 5.0
        assert record.facing == 3.0

    def test_copy_shares_no_position(self, record: SessionRecord) -> None:
        """Test that a copy is independent of the original."""
        copied = record.copy()
        copied.position.x = 99.0
        copied.facing = -1.0

        assert record.position.x == 1.0
        assert record.facing == 0.75
        assert copied.color == record.color
        assert copied.connected_at == record.connected_at
