from apps.context_demo import USER_ID, ContextPropagationDemo
from lib.context.scoped import where


demo = ContextPropagationDemo(config={})


def test_process_with_context():
    result = demo.process_with_context("user123", "req456", "tenant789")
    assert result == "Procesando operación - User: user123, Request: req456, Tenant: tenant789"
    assert not demo.has_user_context()


def test_forked_tasks_inherit_user():
    assert demo.process_with_concurrency("alice") == (
        "Task 1 ejecutada por: alice | Task 2 ejecutada por: alice"
    )


def test_bare_threads_fall_back_to_anonymous_user():
    assert demo.process_with_bare_threads("alice") == (
        "Task 1 ejecutada por: usuario-anonimo | Task 2 ejecutada por: usuario-anonimo"
    )


def test_nested_scopes():
    assert demo.nested_scopes() == "Outer tenant: tenant-1 | Inner tenant: tenant-2"


def test_default_lookups():
    assert demo.has_user_context() is False
    assert demo.get_user_id_or_default() == "usuario-anonimo"
    assert where(USER_ID, "bob").call(demo.has_user_context) is True
    assert where(USER_ID, "bob").call(demo.get_user_id_or_default) == "bob"


def test_describe_default():
    assert demo.describe_default().model_dump(by_alias=True) == {
        "hasContext": False,
        "userId": "usuario-anonimo",
    }
    snapshot = demo.describe_default("bob")
    assert snapshot.has_context is True
    assert snapshot.user_id == "bob"


def test_sequential_calls_do_not_leak():
    first = demo.process_with_context("u1", "r1", "t1")
    second = demo.process_with_context("u2", "r2", "t2")
    assert "u1" not in second and "u2" not in first


def test_anonymous_user_from_config():
    custom = ContextPropagationDemo(config={"context": {"anonymous_user": "guest"}})
    assert custom.get_user_id_or_default() == "guest"
    assert custom.process_with_bare_threads("x").endswith("por: guest")
