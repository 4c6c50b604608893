from __future__ import annotations

import pytest

from cqlcontext.cql.statements import StructuredBatch
from cqlcontext.domain.context import Context, PendingSave
from cqlcontext.domain.errors import ContractViolationError, UnknownTableError
from cqlcontext.domain.model import (
    BatchKind,
    ConsistencyLevel,
    EntityTrackingMode,
    MutationState,
    SaveChangesMode,
    TableType,
)
from tests.helpers.entities import Event, PageViews, User
from tests.helpers.execution import RecordingExecutor


class _NetworkError(RuntimeError):
    pass


def test_save_all_issues_one_batch_per_table_class(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    users.insert(User(id=1, name="a"))
    users.insert(User(id=2, name="b"))
    page = PageViews(page="home", views=1)
    views.attach(page)
    page.views = 2

    context.save_changes()

    assert len(executor.calls) == 2
    counter_call, standard_call = executor.calls
    assert isinstance(counter_call.payload, StructuredBatch)
    assert counter_call.payload.batch_kind is BatchKind.COUNTER
    assert [s.values for s in counter_call.statements] == [(1, "home")]
    assert isinstance(standard_call.payload, StructuredBatch)
    assert standard_call.payload.batch_kind is BatchKind.LOGGED
    assert [s.values for s in standard_call.statements] == [(1, "a"), (2, "b")]
    assert users.tracker.pending_count == 0
    assert views.tracker.pending_count == 0


def test_counter_and_standard_statements_never_share_a_payload(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    events = context.add_table(Event)
    users.insert(User(id=1, name="a"))
    events.insert(Event(user_id=1, at=5, kind="x"))
    views.insert(PageViews(page="home", views=4))
    users.command('DELETE FROM "app"."users" WHERE "id" = ?', (9,))
    views.command('UPDATE "app"."page_views" SET "views" = "views" + 1 WHERE "page" = ?', ("x",))

    context.save_changes()

    for call in executor.calls:
        tables = {s.cql.split('"app".')[1].split('"')[1] for s in call.statements}
        assert tables in ({"page_views"}, {"users", "events"})
    assert context.pending_commands == ()


def test_empty_context_issues_no_calls(context: Context, executor: RecordingExecutor) -> None:
    context.save_changes()
    context.save_changes(mode=SaveChangesMode.ONE_BY_ONE)

    assert executor.calls == []


def test_counter_command_survives_standard_save(
    context: Context, executor: RecordingExecutor
) -> None:
    views = context.add_table(PageViews)
    command = views.command(
        'UPDATE "app"."page_views" SET "views" = "views" + 1 WHERE "page" = ?', ("home",)
    )

    context.save_changes(table_type=TableType.STANDARD)

    assert executor.calls == []
    assert context.pending_commands == (command,)


def test_single_class_save_requeues_other_commands_in_order(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    first = views.command('UPDATE "app"."page_views" SET "views" = "views" + 1 WHERE "page" = ?', ("a",))
    users.command('DELETE FROM "app"."users" WHERE "id" = ?', (1,))
    second = views.command('UPDATE "app"."page_views" SET "views" = "views" + 1 WHERE "page" = ?', ("b",))

    context.save_changes(table_type=TableType.STANDARD)

    assert len(executor.calls) == 1
    assert context.pending_commands == (first, second)


def test_save_uses_explicit_or_default_consistency(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    users.insert(User(id=1))
    context.save_changes()
    users.insert(User(id=2))
    context.save_changes(ConsistencyLevel.ALL)

    assert [call.consistency for call in executor.calls] == [
        ConsistencyLevel.QUORUM,
        ConsistencyLevel.ALL,
    ]


def test_tracking_modes_apply_after_batch_save(context: Context) -> None:
    users = context.add_table(User)
    detached = User(id=1, name="a")
    kept = User(id=2, name="b")
    users.insert(detached)
    users.insert(kept, EntityTrackingMode.KEEP_ATTACHED_AFTER_SAVE)

    context.save_changes()

    assert users.state_of(detached) is MutationState.DETACHED
    assert users.state_of(kept) is MutationState.ATTACHED


def test_begin_and_end_split_the_save(context: Context, executor: RecordingExecutor) -> None:
    users = context.add_table(User)
    users.insert(User(id=1, name="a"))

    pending = context.begin_save_changes_batch(TableType.STANDARD)

    assert isinstance(pending, PendingSave)
    assert users.tracker.pending_count == 1
    context.end_save_changes_batch(pending)
    assert users.tracker.pending_count == 0
    assert executor.completed == [pending.handle]


def test_entity_inserted_during_save_is_written_next_time(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    users.insert(User(id=1, name="a"))
    pending = context.begin_save_changes_batch(TableType.STANDARD)
    late = User(id=2, name="b")
    users.insert(late)

    assert pending is not None
    context.end_save_changes_batch(pending)

    assert [s.values for s in executor.calls[0].statements] == [(1, "a")]
    assert users.state_of(late) is MutationState.NEW
    context.save_changes()
    assert [s.values for s in executor.calls[1].statements] == [(2, "b")]


def test_edit_during_save_is_written_next_time(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    user = User(id=1, name="a")
    users.attach(user)
    user.name = "b"
    pending = context.begin_save_changes_batch(TableType.STANDARD)
    user.name = "c"

    assert pending is not None
    context.end_save_changes_batch(pending)
    context.save_changes()

    assert [s.values for call in executor.calls for s in call.statements] == [
        ("b", None, 1),
        ("c", None, 1),
    ]
    assert users.tracker.pending_count == 0


def test_command_added_during_save_stays_queued(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    users.insert(User(id=1, name="a"))
    counter_command = views.command(
        'UPDATE "app"."page_views" SET "views" = "views" + 1 WHERE "page" = ?', ("a",)
    )
    pending = context.begin_save_changes_batch(TableType.STANDARD)
    late = users.command('DELETE FROM "app"."users" WHERE "id" = ?', (9,))

    assert pending is not None
    context.end_save_changes_batch(pending)

    assert context.pending_commands == (counter_command, late)


def test_rendering_during_save_does_not_disturb_reconciliation(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    sent = User(id=1, name="a")
    users.insert(sent)
    pending = context.begin_save_changes_batch(TableType.STANDARD)
    late = User(id=2, name="b")
    users.insert(late)

    assert "(2, 'b')" in context.to_cql()
    assert pending is not None
    context.end_save_changes_batch(pending)

    assert users.state_of(sent) is MutationState.DETACHED
    assert users.state_of(late) is MutationState.NEW


def test_one_by_one_save_is_rejected_while_batch_in_flight(context: Context) -> None:
    users = context.add_table(User)
    users.insert(User(id=1))
    pending = context.begin_save_changes_batch(TableType.STANDARD)

    assert pending is not None
    with pytest.raises(ContractViolationError):
        context.save_changes(mode=SaveChangesMode.ONE_BY_ONE)


def test_zero_counter_insert_is_settled_without_a_write(
    context: Context, executor: RecordingExecutor
) -> None:
    views = context.add_table(PageViews)
    page = PageViews(page="x", views=0)
    views.insert(page)

    context.save_changes()

    assert executor.calls == []
    assert views.state_of(page) is MutationState.DETACHED


def test_unmodified_entity_follows_detach_after_save(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    untouched = User(id=1, name="a")
    users.attach(untouched, tracking_mode=EntityTrackingMode.DETACH_AFTER_SAVE)
    users.insert(User(id=2, name="b"))

    context.save_changes()

    assert len(executor.calls) == 1
    assert users.state_of(untouched) is MutationState.DETACHED


def test_begin_returns_none_when_nothing_to_save(context: Context) -> None:
    context.add_table(User)

    assert context.begin_save_changes_batch(TableType.COUNTER) is None


def test_begin_passes_callback_and_state(context: Context, executor: RecordingExecutor) -> None:
    users = context.add_table(User)
    users.insert(User(id=1))
    seen: list[object] = []

    pending = context.begin_save_changes_batch(
        TableType.STANDARD, callback=seen.append, state="caller-state"
    )

    assert pending is not None
    assert seen == [pending.handle]
    assert executor.callbacks[0].state == "caller-state"


@pytest.mark.parametrize("table_type", [TableType.ALL, TableType(0)])
def test_begin_requires_a_single_table_type(context: Context, table_type: TableType) -> None:
    with pytest.raises(ContractViolationError):
        context.begin_save_changes_batch(table_type)


def test_begin_is_not_reentrant(context: Context) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    users.insert(User(id=1))
    views.insert(PageViews(page="home", views=1))
    pending = context.begin_save_changes_batch(TableType.STANDARD)

    with pytest.raises(ContractViolationError):
        context.begin_save_changes_batch(TableType.COUNTER)

    assert pending is not None
    context.end_save_changes_batch(pending)
    assert context.begin_save_changes_batch(TableType.COUNTER) is not None


def test_end_rejects_foreign_pending_saves(context: Context, executor: RecordingExecutor) -> None:
    other = Context(RecordingExecutor())
    other_users = other.add_table(User)
    other_users.insert(User(id=1))
    foreign = other.begin_save_changes_batch(TableType.STANDARD)

    assert foreign is not None
    with pytest.raises(ContractViolationError):
        context.end_save_changes_batch(foreign)
    assert executor.completed == []


def test_failed_end_leaves_pending_work_for_retry(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    user = User(id=1, name="a")
    users.insert(user)
    counter_command = views.command(
        'UPDATE "app"."page_views" SET "views" = "views" + 1 WHERE "page" = ?', ("a",)
    )
    before = [s.values for s in users.tracker.pending_statements(users.identity)]  # type: ignore[attr-defined]
    executor.fail_on_end = _NetworkError("timed out")

    pending = context.begin_save_changes_batch(TableType.STANDARD)
    assert pending is not None
    with pytest.raises(_NetworkError):
        context.end_save_changes_batch(pending)

    after = [s.values for s in users.tracker.pending_statements(users.identity)]  # type: ignore[attr-defined]
    assert after == before
    assert users.state_of(user) is MutationState.NEW
    assert context.pending_commands == (counter_command,)

    executor.fail_on_end = None
    context.save_changes(table_type=TableType.STANDARD)
    assert users.tracker.pending_count == 0
    assert [s.values for s in executor.calls[-1].statements] == before


def test_one_by_one_executes_statements_individually(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    users.insert(User(id=1, name="a"))
    users.insert(User(id=2, name="b"))
    views.insert(PageViews(page="home", views=3))
    command = users.command('DELETE FROM "app"."users" WHERE "id" = ?', (7,))

    context.save_changes(mode=SaveChangesMode.ONE_BY_ONE)

    assert len(executor.calls) == 4
    assert all(not isinstance(call.payload, StructuredBatch) for call in executor.calls)
    assert executor.calls[-1].payload is command.statement
    assert users.tracker.pending_count == 0
    assert views.tracker.pending_count == 0
    assert context.pending_commands == ()


def test_one_by_one_single_class_requeues_other_commands(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    views = context.add_table(PageViews)
    views.insert(PageViews(page="home", views=3))
    deletion = users.command('DELETE FROM "app"."users" WHERE "id" = ?', (7,))

    context.save_changes(mode=SaveChangesMode.ONE_BY_ONE, table_type=TableType.COUNTER)

    assert len(executor.calls) == 1
    assert context.pending_commands == (deletion,)


def test_one_by_one_failure_keeps_commands_queued(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    command = users.command('DELETE FROM "app"."users" WHERE "id" = ?', (7,))
    executor.fail_on_execute = _NetworkError("unavailable")

    with pytest.raises(_NetworkError):
        context.save_changes(mode=SaveChangesMode.ONE_BY_ONE)

    assert context.pending_commands == (command,)


def test_tracing_is_requested_and_traces_recorded(
    context: Context, executor: RecordingExecutor
) -> None:
    users = context.add_table(User)
    traced = User(id=1, name="a")
    users.insert(traced, EntityTrackingMode.KEEP_ATTACHED_AFTER_SAVE)
    users.insert(User(id=2, name="b"))
    users.enable_query_tracing(traced)

    context.save_changes()

    assert executor.calls[0].tracing is True
    assert users.retrieve_query_trace(traced) == "trace-1"
    assert users.retrieve_all_query_traces() == ["trace-1"]


def test_add_table_is_idempotent_and_lookups_work(context: Context) -> None:
    first = context.add_table(User)
    second = context.add_table(User, table_name="users", keyspace="app")

    assert first.table is second.table
    assert first.tracker is second.tracker
    assert context.has_table(User)
    assert not context.has_table(User, keyspace="other")
    assert context.get_table(User).table is first.table
    with pytest.raises(UnknownTableError):
        context.get_table(Event)


def test_commands_for_unregistered_tables_are_rejected(context: Context) -> None:
    other = Context(RecordingExecutor())
    foreign = other.add_table(User, keyspace="elsewhere")

    with pytest.raises(UnknownTableError):
        context.append_command(foreign.command('DELETE FROM "x" WHERE "id" = ?', (1,)))


def test_create_tables_if_not_exist(context: Context, executor: RecordingExecutor) -> None:
    users = context.add_table(User)
    events = context.add_table(Event)
    executor.existing_tables.add(users.identity)

    context.create_tables_if_not_exist()

    assert executor.created_tables == [events.identity]


def test_str_renders_standard_script_without_executing(
    legacy_context: Context, legacy_executor: RecordingExecutor
) -> None:
    users = legacy_context.add_table(User)
    views = legacy_context.add_table(PageViews)
    users.insert(User(id=1, name="Ada"))
    views.insert(PageViews(page="home", views=1))

    assert str(legacy_context) == (
        "BEGIN BATCH\n"
        "INSERT INTO \"app\".\"users\"(\"id\", \"name\") VALUES (1, 'Ada');\n"
        "APPLY BATCH"
    )
    assert legacy_context.to_cql().startswith("BEGIN COUNTER BATCH\n")
    assert legacy_executor.calls == []


def test_legacy_executor_receives_scripts(
    legacy_context: Context, legacy_executor: RecordingExecutor
) -> None:
    views = legacy_context.add_table(PageViews)
    views.insert(PageViews(page="home", views=1))

    legacy_context.save_changes()

    [call] = legacy_executor.calls
    assert not isinstance(call.payload, StructuredBatch)
    assert call.payload.cql == (
        "BEGIN COUNTER BATCH\n"
        "UPDATE \"app\".\"page_views\" SET \"views\" = \"views\" + 1 WHERE \"page\" = 'home';\n"
        "APPLY BATCH"
    )
