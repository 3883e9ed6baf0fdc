"""
Cascade propagation tests

Parent / Child / SubChild walk through the whole denormalization chain:
insert, re-parenting, nested propagation and delete.
"""

import asyncio
import logging

import pytest
import pytest_asyncio

from docmodel import (
    CascadeConfig, Connection, Document, EventType, MemoryDocumentStore, PropagationWriteError,
)

from .models import CascadeChild, CascadeParent, ChildRef, SubChild, SubChildRef


class FailingArrayStore(MemoryDocumentStore):
    async def upsert_array_element_by_id(self, *args, **kwargs):
        raise RuntimeError("array writes are down")


class SlowStore(MemoryDocumentStore):
    async def update_where(self, collection, query, update):
        await asyncio.sleep(1)
        return await super().update_where(collection, query, update)


class BlockingStore(MemoryDocumentStore):
    """Fails every write addressed to `blocked_id`"""

    blocked_id = None

    def _check(self, query):
        if self.blocked_id is not None and query == {"_id": self.blocked_id}:
            raise RuntimeError(f"{self.blocked_id} is read-only")

    async def update_where(self, collection, query, update):
        self._check(query)
        return await super().update_where(collection, query, update)

    async def remove_array_element_by_id(self, collection, query, *args, **kwargs):
        self._check(query)
        return await super().remove_array_element_by_id(collection, query, *args, **kwargs)


class BrokenCascade(Document):
    __collection__ = "broken"

    name: str = ""

    def get_cascade(self, collection):
        raise RuntimeError("config build failed")


class Unfiltered(Document):
    __collection__ = "unfiltered"

    name: str = ""

    def get_cascade(self, collection):
        return [CascadeConfig(
            collection="parents",
            properties=["bar"],
            data={"bar": self.name},
            query={},
        )]


async def open_connection(config, bus, store):
    connection = Connection(config, store=store, bus=bus)
    connection.register(CascadeParent, CascadeChild, SubChild)
    return await connection.connect()


@pytest_asyncio.fixture
async def parents(connection):
    first = CascadeParent(bar="Testy McGee", number=5)
    second = CascadeParent(bar="Other Parent", number=7)
    await connection.save(first)
    await connection.save(second)
    return first, second


class TestCascadeChain:
    @pytest.mark.asyncio
    async def test_full_chain(self, connection, parents):
        first, second = parents

        # Insert
        child = CascadeChild(name="Foo", parent_id=first.id, child_prop="Bar")
        await connection.save(child)
        await connection.executor.join()

        loaded = await connection.find_by_id(CascadeParent, first.id)
        assert loaded.child.id == child.id
        assert loaded.child.name == "Foo"
        assert [ref.id for ref in loaded.children] == [child.id]
        assert loaded.children[0].name == "Foo"
        assert loaded.child_prop == "Bar"
        assert loaded.bar == "Testy McGee"

        # Re-parent
        child.parent_id = second.id
        assert child.get_diff_tracker().modified("parent_id")
        await connection.save(child)
        await connection.executor.join()

        old_parent = await connection.find_by_id(CascadeParent, first.id)
        assert old_parent.child.name == ""
        assert old_parent.children == []
        assert old_parent.child_prop == ""

        new_parent = await connection.find_by_id(CascadeParent, second.id)
        assert new_parent.child.id == child.id
        assert new_parent.child.name == "Foo"
        assert [ref.id for ref in new_parent.children] == [child.id]
        assert new_parent.child_prop == "Bar"

        # Nested: sub child -> child -> parent
        sub_child = SubChild(foo="Baz", child_id=child.id)
        await connection.save(sub_child)
        await connection.executor.join()

        stored_child = await connection.find_by_id(CascadeChild, child.id)
        assert stored_child.sub_child.id == sub_child.id
        assert stored_child.sub_child.foo == "Baz"

        new_parent = await connection.find_by_id(CascadeParent, second.id)
        assert new_parent.child.sub_child.foo == "Baz"
        assert new_parent.child.sub_child.id == sub_child.id
        assert new_parent.children[0].sub_child.foo == "Baz"

        # Delete
        await connection.delete_document(stored_child)
        await connection.executor.join()

        new_parent = await connection.find_by_id(CascadeParent, second.id)
        assert new_parent.child.name == ""
        assert new_parent.child.sub_child.foo == ""
        assert new_parent.children == []
        assert new_parent.child_prop == ""
        assert new_parent.bar == "Other Parent"

    @pytest.mark.asyncio
    async def test_unchanged_reference_keeps_old_parent_alone(self, connection, parents):
        first, second = parents
        bystander = CascadeChild(name="Bystander", parent_id=second.id)
        await connection.save(bystander)
        child = CascadeChild(name="Foo", parent_id=first.id)
        await connection.save(child)
        await connection.executor.join()

        child.name = "Renamed"
        await connection.save(child)
        await connection.executor.join()

        assert (await connection.find_by_id(CascadeParent, first.id)).child.name == "Renamed"
        assert (await connection.find_by_id(CascadeParent, second.id)).child.name == "Bystander"

    @pytest.mark.asyncio
    async def test_many_upsert_replaces_in_place(self, connection):
        parent = CascadeParent(children=[ChildRef(id="a", name="A"), ChildRef(id="b", name="B")])
        await connection.save(parent)

        await connection.save(CascadeChild(id="a", name="Renamed", parent_id=parent.id))
        await connection.save(CascadeChild(id="c", name="C", parent_id=parent.id))
        await connection.executor.join()

        loaded = await connection.find_by_id(CascadeParent, parent.id)
        assert [ref.id for ref in loaded.children] == ["a", "b", "c"]
        assert [ref.name for ref in loaded.children] == ["Renamed", "B", "C"]

    @pytest.mark.asyncio
    async def test_events(self, connection, parents, recorded_events):
        first, _ = parents
        child = CascadeChild(name="Foo", parent_id=first.id)
        task = await connection.save(child)
        outcome = await task

        assert outcome.succeeded
        assert outcome.configurations == 3
        assert [event.event_type for event in recorded_events[-2:]] == [
            EventType.DOCUMENT_SAVED, EventType.CASCADE_COMPLETED,
        ]
        assert recorded_events[-1].document_id == child.id


class TestCascadeFailures:
    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, config, bus, recorded_events):
        connection = await open_connection(config, bus, FailingArrayStore())
        try:
            parent = CascadeParent()
            await connection.save(parent)
            child = CascadeChild(name="Foo", parent_id=parent.id, child_prop="Bar")

            task = await connection.save(child)
            outcome = await task

            assert not outcome.succeeded
            assert len(outcome.errors) == 1
            error = outcome.errors[0]
            assert isinstance(error, PropagationWriteError)
            assert error.collection == "parents"
            assert error.step == "write"
            assert isinstance(error.cause, RuntimeError)

            loaded = await connection.find_by_id(CascadeParent, parent.id)
            assert loaded.child.name == "Foo"
            assert loaded.child_prop == "Bar"
            assert loaded.children == []

            failed = [e for e in recorded_events if e.event_type is EventType.CASCADE_FAILED]
            assert len(failed) == 1
            assert "array writes are down" in failed[0].payload["errors"][0]
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_slow_store_times_out(self, config, bus):
        config.cascade.operation_timeout = 0.05
        connection = await open_connection(config, bus, SlowStore())
        try:
            parent = CascadeParent()
            await connection.save(parent)

            task = await connection.save(CascadeChild(name="Foo", parent_id=parent.id))
            outcome = await task

            assert len(outcome.errors) == 2
            assert all(isinstance(e.cause, asyncio.TimeoutError) for e in outcome.errors)
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_empty_filter_is_refused(self, connection, parents, caplog):
        first, second = parents

        with caplog.at_level(logging.WARNING, logger="docmodel.cascade.executor"):
            task = await connection.save(Unfiltered(name="everyone"))
            outcome = await task

        assert outcome.succeeded
        assert "without a match filter" in caplog.text
        assert (await connection.find_by_id(CascadeParent, first.id)).bar == "Testy McGee"
        assert (await connection.find_by_id(CascadeParent, second.id)).bar == "Other Parent"


    @pytest.mark.asyncio
    async def test_missing_target_is_a_noop(self, connection, parents):
        first, _ = parents

        task = await connection.save(CascadeChild(name="Lost", parent_id="no-such-parent"))
        outcome = await task

        assert outcome.succeeded
        assert await connection.collection_for(CascadeParent).count() == 2
        loaded = await connection.find_by_id(CascadeParent, first.id)
        assert loaded.child.name == ""
        assert loaded.children == []

    @pytest.mark.asyncio
    async def test_failed_prior_removal_still_writes(self, config, bus):
        store = BlockingStore()
        connection = await open_connection(config, bus, store)
        try:
            first, second = CascadeParent(), CascadeParent()
            await connection.save(first)
            await connection.save(second)
            child = CascadeChild(name="Foo", parent_id=first.id, child_prop="Bar")
            await connection.save(child)
            await connection.executor.join()

            store.blocked_id = first.id
            child.parent_id = second.id
            outcome = await (await connection.save(child))

            assert len(outcome.errors) == 3
            assert {error.step for error in outcome.errors} == {"remove"}

            new_parent = await connection.find_by_id(CascadeParent, second.id)
            assert new_parent.child.name == "Foo"
            assert [ref.id for ref in new_parent.children] == [child.id]
            assert new_parent.child_prop == "Bar"

            old_parent = await connection.find_by_id(CascadeParent, first.id)
            assert old_parent.child.name == "Foo"
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_raising_get_cascade_does_not_fail_the_save(self, connection, recorded_events, caplog):
        document = BrokenCascade(name="kept")

        with caplog.at_level(logging.ERROR, logger="docmodel.collection"):
            task = await connection.save(document)

        assert task is None
        assert not document.is_new()
        assert document.get_diff_tracker().compare() == (False, [])
        assert await connection.collection_for(BrokenCascade).count() == 1
        assert "config build failed" in caplog.text
        assert [event.event_type for event in recorded_events[-2:]] == [
            EventType.DOCUMENT_SAVED, EventType.CASCADE_FAILED,
        ]
        assert "configure" in recorded_events[-1].payload["errors"][0]

        assert await connection.delete_document(document) is None
        assert [event.event_type for event in recorded_events[-2:]] == [
            EventType.DOCUMENT_DELETED, EventType.CASCADE_FAILED,
        ]
        assert await connection.collection_for(BrokenCascade).count() == 0


class TestCascadeOptions:
    @pytest.mark.asyncio
    async def test_disabled(self, config, bus):
        config.cascade.enabled = False
        connection = await open_connection(config, bus, MemoryDocumentStore())
        try:
            parent = CascadeParent()
            await connection.save(parent)

            task = await connection.save(CascadeChild(name="Foo", parent_id=parent.id))

            assert task is None
            assert (await connection.find_by_id(CascadeParent, parent.id)).child.name == ""
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_await_propagation(self, config, bus):
        config.cascade.await_propagation = True
        connection = await open_connection(config, bus, MemoryDocumentStore())
        try:
            parent = CascadeParent()
            await connection.save(parent)

            task = await connection.save(CascadeChild(name="Foo", parent_id=parent.id))

            assert task.done()
            assert (await connection.find_by_id(CascadeParent, parent.id)).child.name == "Foo"
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_max_depth_stops_nesting(self, config, bus):
        config.cascade.max_depth = 0
        connection = await open_connection(config, bus, MemoryDocumentStore())
        try:
            parent = CascadeParent()
            await connection.save(parent)
            child = CascadeChild(name="Foo", parent_id=parent.id)
            await connection.save(child)
            await connection.executor.join()

            await connection.save(SubChild(foo="Baz", child_id=child.id))
            await connection.executor.join()

            assert (await connection.find_by_id(CascadeChild, child.id)).sub_child.foo == "Baz"
            assert (await connection.find_by_id(CascadeParent, parent.id)).child.sub_child.foo == ""
        finally:
            await connection.close()

    @pytest.mark.asyncio
    async def test_sub_child_ref_round_trip(self, connection):
        child = CascadeChild(name="Foo", sub_child=SubChildRef(id="s1", foo="x"))
        await connection.save(child)

        loaded = await connection.find_by_id(CascadeChild, child.id)
        assert loaded.sub_child == SubChildRef(id="s1", foo="x")
