"""Unit tests for the schema version gate."""
from __future__ import annotations

import pytest

from lifecycle_worker.core.exceptions import MetadataMissing, SchemaNotReady
from lifecycle_worker.infra.database import SchemaGate


@pytest.mark.unit
@pytest.mark.asyncio
class TestSchemaGate:
    """Test suite for SchemaGate."""

    async def test_reads_patch_level(self, pools, set_patch_level):
        await set_patch_level(7)

        assert await SchemaGate(pools, "schema-patch-level").current_patch_level() == 7

    async def test_missing_row(self, pools):
        with pytest.raises(MetadataMissing):
            await SchemaGate(pools, "schema-patch-level").current_patch_level()

    async def test_non_integer_value(self, pools, set_patch_level):
        await set_patch_level("seven")

        with pytest.raises(MetadataMissing):
            await SchemaGate(pools, "schema-patch-level").current_patch_level()

    async def test_custom_patch_key(self, pools, set_patch_level):
        await set_patch_level(2, key="other-key")

        assert await SchemaGate(pools, "other-key").current_patch_level() == 2

    async def test_require_passes(self, pools, set_patch_level):
        await set_patch_level(5)

        assert await SchemaGate(pools, "schema-patch-level").require(5) == 5

    async def test_require_below_minimum(self, pools, set_patch_level):
        await set_patch_level(4)

        with pytest.raises(SchemaNotReady) as exc_info:
            await SchemaGate(pools, "schema-patch-level").require(5)

        assert exc_info.value.current == 4
        assert exc_info.value.required == 5
