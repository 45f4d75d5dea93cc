"""Tests for the EdgesAsync class."""

from __future__ import annotations

import asyncio
import random
import uuid
from unittest.mock import AsyncMock

import pytest

from edgeprops._edges_async import EdgesAsync
from edgeprops.exceptions import DescriptorError
from edgeprops.filters import and_, eq, gte, ne
from edgeprops.store.memory import MemoryCollection
from edgeprops.types import ALL, EdgeDescriptor, EdgeRecord, named


def _random_props() -> dict[str, bool]:
    return {"friend": random.random() < 0.5, "foe": random.random() < 0.5}


# ==================================================================
# Construction & lifecycle
# ==================================================================


class TestConstruction:
    def test_requires_a_source(self):
        with pytest.raises(ValueError, match="exactly one"):
            EdgesAsync()

    def test_rejects_two_sources(self, async_engine):
        with pytest.raises(ValueError):
            EdgesAsync(MemoryCollection(), engine=async_engine)

    def test_collection_property(self):
        coll = MemoryCollection()
        assert EdgesAsync(coll).collection is coll

    async def test_session_factory_source(self, async_engine, pair):
        from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

        factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
        store = EdgesAsync(session_factory=factory)
        src, dest = pair
        await store.set_properties(src, dest, {"friend": True})
        edge = await store.get_properties(src, dest)
        assert edge.props == {"friend": True}

    async def test_context_manager_opens_and_closes(self):
        coll = AsyncMock()
        async with EdgesAsync(coll) as store:
            assert isinstance(store, EdgesAsync)
        coll.open.assert_awaited_once()
        coll.close.assert_awaited_once()

    async def test_close_is_idempotent(self):
        coll = AsyncMock()
        store = EdgesAsync(coll)
        await store.close()
        await store.close()
        coll.close.assert_awaited_once()


# ==================================================================
# set_properties
# ==================================================================


class TestSetProperties:
    async def test_inserts_edge_when_absent(self, edges, pair):
        src, dest = pair
        assert await edges.find_edges(src=src) == []

        await edges.set_properties(src, dest, _random_props())

        found = await edges.find_edges(src=src, dest=dest)
        assert len(found) == 1

    async def test_creates_new_properties(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        edge = await edges.get_properties(src, dest)
        assert edge.props == {"friend": True, "foe": False}

    async def test_repeated_set_does_not_duplicate(self, edges, pair):
        src, dest = pair
        for _ in range(3):
            await edges.set_properties(src, dest, _random_props())

        assert len(await edges.find_edges(src=src)) == 1

    async def test_idempotent_assign(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True})
        first = await edges.get_properties(src, dest)
        await edges.set_properties(src, dest, {"friend": True})
        second = await edges.get_properties(src, dest)
        assert first == second

    async def test_overwrites_existing_property(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": True})
        await edges.set_properties(src, dest, {"friend": False})

        edge = await edges.get_properties(src, dest)
        assert edge.props == {"friend": False, "foe": True}

    async def test_dot_path_leaves_siblings(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"meta": {"since": 2014, "via": "school"}})
        await edges.set_properties(src, dest, {"meta.since": 2015})

        edge = await edges.get_properties(src, dest)
        assert edge.props == {"meta": {"since": 2015, "via": "school"}}

    async def test_returns_none(self, edges, pair):
        src, dest = pair
        assert await edges.set_properties(src, dest, {"friend": True}) is None

    async def test_string_ids(self, edges, pair):
        src, dest = pair
        await edges.set_properties(str(src), str(dest), {"friend": True})
        edge = await edges.get_properties(src, dest)
        assert edge.src == src
        assert edge.props == {"friend": True}

    async def test_requires_mapping(self, edges, pair):
        src, dest = pair
        with pytest.raises(DescriptorError):
            await edges.set_properties(src, dest, ["friend"])  # type: ignore[arg-type]

    async def test_concurrent_sets_keep_one_edge_and_every_key(self, edges, pair):
        src, dest = pair
        await asyncio.gather(
            *(edges.set_properties(src, dest, {f"k{i}": i}) for i in range(10))
        )

        found = await edges.find_edges(src=src)
        assert len(found) == 1
        assert found[0].props == {f"k{i}": i for i in range(10)}

    async def test_concurrent_first_writes_on_many_pairs(self, edges):
        src = uuid.uuid4()
        dests = [uuid.uuid4() for _ in range(5)]
        await asyncio.gather(
            *(edges.set_properties(src, d, {"friend": True}) for d in dests for _ in range(2))
        )

        found = await edges.find_edges(src=src)
        assert sorted(e.dest for e in found) == sorted(dests)

    async def test_missing_dest_is_a_descriptor_error(self, edges):
        with pytest.raises(DescriptorError):
            await edges.set_properties(uuid.uuid4(), None, {"friend": True})  # type: ignore[arg-type]


# ==================================================================
# get_properties
# ==================================================================


class TestGetProperties:
    async def test_all_properties_without_props(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        edge = await edges.get_properties(src, dest)
        assert edge == EdgeRecord(src=src, dest=dest, props={"friend": True, "foe": False})

    async def test_selected_properties_mapping(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        edge = await edges.get_properties(src, dest, {"friend": True})
        assert edge.props == {"friend": True}

    async def test_selected_properties_names(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False, "kin": 2})

        edge = await edges.get_properties(src, dest, ["foe", "kin"])
        assert edge.props == {"foe": False, "kin": 2}

    async def test_selector(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})
        assert (await edges.get_properties(src, dest, named("foe"))).props == {"foe": False}
        assert (await edges.get_properties(src, dest, ALL)).props == {"friend": True, "foe": False}

    async def test_missing_edge_is_created_empty(self, edges, pair):
        src, dest = pair
        edge = await edges.get_properties(src, dest)

        assert edge == EdgeRecord(src=src, dest=dest, props=None)
        assert len(await edges.find_edges(src=src)) == 1

    async def test_round_trip(self, edges, pair):
        src, dest = pair
        props = {
            "friend": True,
            "weight": 2.5,
            "count": 7,
            "label": "met at work",
            "tags": ["a", "b"],
            "meta": {"since": 2014, "note": None},
        }
        await edges.set_properties(src, dest, props)
        edge = await edges.get_properties(src, dest)
        assert edge.props == props


# ==================================================================
# remove_properties
# ==================================================================


class TestRemoveProperties:
    async def test_removes_all_without_props(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        await edges.remove_properties(src, dest)

        edge = await edges.get_properties(src, dest)
        assert edge.props is None

    async def test_removes_only_named(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        await edges.remove_properties(src, dest, {"friend": True})

        edge = await edges.get_properties(src, dest)
        assert edge.props == {"foe": False}

    async def test_removing_missing_property_is_noop(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True})
        await edges.remove_properties(src, dest, ["enemy"])
        assert (await edges.get_properties(src, dest)).props == {"friend": True}

    async def test_set_after_remove_all(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True})
        await edges.remove_properties(src, dest)
        await edges.set_properties(src, dest, {"foe": True})
        assert (await edges.get_properties(src, dest)).props == {"foe": True}


# ==================================================================
# find_edges
# ==================================================================


class TestFindEdges:
    async def test_no_criteria_returns_empty_without_storage(self):
        coll = AsyncMock()
        store = EdgesAsync(coll)

        assert await store.find_edges() == []
        assert await store.find_edges(props=["friend"]) == []
        coll.find_many.assert_not_called()
        coll.upsert_one.assert_not_called()

    async def test_all_fields_without_props(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        found = await edges.find_edges(src=src, dest=dest)
        assert found == [EdgeRecord(src=src, dest=dest, props={"friend": True, "foe": False})]

    async def test_selected_fields(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True, "foe": False})

        found = await edges.find_edges(src=src, props={"friend": True})
        assert [e.props for e in found] == [{"friend": True}]

    async def test_find_condition_returns_strict_subset(self, edges):
        src = uuid.uuid4()
        friends = {uuid.uuid4(): True, uuid.uuid4(): False, uuid.uuid4(): True, uuid.uuid4(): False}
        for dest, friend in friends.items():
            await edges.set_properties(src, dest, {"friend": friend})
        # an edge with no friend property at all also satisfies $ne
        stranger = uuid.uuid4()
        await edges.set_properties(src, stranger, {"foe": True})

        found = await edges.find_edges(src=src, find={"friend": {"$ne": True}})

        expected = {d for d, f in friends.items() if not f} | {stranger}
        assert {e.dest for e in found} == expected
        assert len(found) < len(friends) + 1

    async def test_find_without_src(self, edges):
        tag = uuid.uuid4().hex
        a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        await edges.set_properties(a, b, {"tag": tag})
        await edges.set_properties(b, c, {"tag": tag})
        await edges.set_properties(a, c, {"tag": "other"})

        found = await edges.find_edges(find={"tag": tag})
        assert {(e.src, e.dest) for e in found} == {(a, b), (b, c)}

    async def test_by_dest(self, edges):
        dest = uuid.uuid4()
        srcs = {uuid.uuid4() for _ in range(3)}
        for src in srcs:
            await edges.set_properties(src, dest, {"friend": True})

        found = await edges.find_edges(dest=dest)
        assert {e.src for e in found} == srcs

    async def test_filter_expression(self, edges):
        src = uuid.uuid4()
        for rank in range(5):
            await edges.set_properties(src, uuid.uuid4(), {"rank": rank, "friend": rank % 2 == 0})

        found = await edges.find_edges(src=src, find=and_(gte("rank", 1), eq("friend", True)))
        assert sorted(e.props["rank"] for e in found) == [2, 4]

        found = await edges.find_edges(src=src, find=ne("friend", True), props=["rank"])
        assert sorted(e.props["rank"] for e in found) == [1, 3]

    async def test_no_match_is_empty(self, edges):
        assert await edges.find_edges(src=uuid.uuid4(), find={"friend": True}) == []


# ==================================================================
# run
# ==================================================================


class TestRun:
    async def test_set_and_get_in_one_descriptor(self, edges, pair):
        src, dest = pair
        record = await edges.run(
            EdgeDescriptor(src=src, dest=dest, set={"friend": True}, get=ALL)
        )
        assert record == EdgeRecord(src=src, dest=dest, props={"friend": True})

    async def test_multi_edge_descriptor(self, edges, pair):
        src, dest = pair
        await edges.set_properties(src, dest, {"friend": True})
        found = await edges.run(EdgeDescriptor(src=src, find={}, get=named("friend")))
        assert found == [EdgeRecord(src=src, dest=dest, props={"friend": True})]

    async def test_multi_edge_mutation_rejected(self, edges):
        with pytest.raises(DescriptorError):
            await edges.run(EdgeDescriptor(src=uuid.uuid4(), find={}, set={"friend": True}))
