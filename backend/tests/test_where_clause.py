import pytest

from exceptions import ValidationError
from models import Department, User
from repositories.where_clause import WhereClauseSpec, is_value_collection, split_path


@pytest.fixture
def directory(entity_factory):
    """Two departments, a manager and three reports with mixed emails"""
    sales = entity_factory.create_department(name="Sales", code="S1")
    support = entity_factory.create_department(name="Support", code=None)
    manager = entity_factory.create_user(username="boss", department=sales, email="boss@example.com")
    return {
        "sales": sales,
        "support": support,
        "boss": manager,
        "alice": entity_factory.create_user(username="alice", department=sales, manager=manager, email=None),
        "bob": entity_factory.create_user(username="bob", department=support, manager=manager, email="bob@example.com"),
        "carol": entity_factory.create_user(username="carol", department=None, email=None),
    }


def _names(users):
    return sorted(user.username for user in users)


def test_is_value_collection():
    assert is_value_collection(["a"])
    assert is_value_collection(("a", "b"))
    assert is_value_collection({"a"})
    assert not is_value_collection("abc")
    assert not is_value_collection(None)
    assert not is_value_collection({"a": 1})


def test_split_path():
    assert split_path("manager.department.name") == ["manager", "department", "name"]
    for path in ("", "department..name", ".name", "name."):
        with pytest.raises(ValidationError):
            split_path(path)


def test_scalar_value_is_equality(directory, entity_helper):
    assert _names(entity_helper.find_all(User, {"username": "alice"})) == ["alice"]


def test_scalar_none_is_null(directory, entity_helper):
    assert _names(entity_helper.find_all(User, {"email": None})) == ["alice", "carol"]


def test_single_element_collection_behaves_like_scalar(directory, entity_helper):
    assert _names(entity_helper.find_all(User, {"username": ["bob"]})) == ["bob"]
    assert _names(entity_helper.find_all(User, {"email": [None]})) == ["alice", "carol"]
    assert _names(entity_helper.find_all(User, {"email": (None,)})) == ["alice", "carol"]


def test_multiple_values_are_in(directory, entity_helper):
    found = entity_helper.find_all(User, {"username": ["alice", "bob", "nobody"]})

    assert _names(found) == ["alice", "bob"]


def test_mixed_values_are_null_or_in(directory, entity_helper):
    found = entity_helper.find_all(User, {"email": [None, "bob@example.com"]})

    assert _names(found) == ["alice", "bob", "carol"]


def test_empty_collection_matches_nothing(directory, entity_helper):
    assert entity_helper.find_all(User, {"username": []}) == []
    assert entity_helper.find_all(User, {"username": set()}) == []


def test_entries_are_conjunctive(directory, entity_helper):
    found = entity_helper.find_all(User, {"department.name": "Sales", "email": None})

    assert _names(found) == ["alice"]


def test_nested_path_excludes_rows_without_the_relationship(directory, entity_helper):
    found = entity_helper.find_all(User, {"department.code": [None, "S1"]})

    # carol has no department at all, so the join drops her
    assert _names(found) == ["alice", "bob", "boss"]


def test_two_level_path(directory, entity_helper):
    found = entity_helper.find_all(User, {"manager.department.name": "Sales"})

    assert _names(found) == ["alice", "bob"]


def test_relationship_as_last_segment(directory, entity_helper):
    sales, support = directory["sales"], directory["support"]

    assert _names(entity_helper.find_all(User, {"department": None})) == ["carol"]
    assert _names(entity_helper.find_all(User, {"department": sales})) == ["alice", "boss"]
    assert _names(entity_helper.find_all(User, {"department": [sales, support]})) == ["alice", "bob", "boss"]
    assert _names(entity_helper.find_all(User, {"manager": [None, directory["boss"]]})) == [
        "alice", "bob", "boss", "carol"
    ]


def test_collection_hop_fans_out(entity_factory, entity_helper):
    admin = entity_factory.create_role(name="admin")
    member = entity_factory.create_role(name="member")
    entity_factory.create_user(username="root", roles=[admin, member])
    entity_factory.create_user(username="guest", roles=[member])

    found = entity_helper.find_all(User, {"roles.name": ["admin", "member"]})

    assert _names(found) == ["guest", "root"]


def test_shared_prefix_shares_join():
    spec = WhereClauseSpec(User, {
        "department.name": "Sales",
        "department.code": "S1",
        "manager.department.name": "Sales",
    })

    assert len(spec.join_paths()) == 3


def test_empty_where_clause_has_no_joins():
    assert WhereClauseSpec(User).join_paths() == []
    assert WhereClauseSpec(User, {}).join_paths() == []


@pytest.mark.parametrize("path", [
    "nickname",
    "department.nickname",
    "username.length",
    "roles",
    "department.users",
])
def test_invalid_paths_raise(path):
    with pytest.raises(ValidationError):
        WhereClauseSpec(User, {path: "x"})


def test_is_satisfied_by_in_memory():
    sales = Department(name="Sales", code=None)
    alice = User(username="alice", email=None, department=sales)
    carol = User(username="carol", email="c@example.com", department=None)

    assert WhereClauseSpec(User, {"department.name": "Sales"}).is_satisfied_by(alice)
    assert not WhereClauseSpec(User, {"department.name": "Sales"}).is_satisfied_by(carol)
    assert WhereClauseSpec(User, {"email": [None]}).is_satisfied_by(alice)
    assert not WhereClauseSpec(User, {"email": []}).is_satisfied_by(alice)
    assert WhereClauseSpec(User, {"department.code": [None, "S1"]}).is_satisfied_by(alice)
    assert not WhereClauseSpec(User, {"department.code": [None, "S1"]}).is_satisfied_by(carol)
    assert WhereClauseSpec(User, {}).is_satisfied_by(carol)


@pytest.mark.parametrize("where_params", [
    {"email": None},
    {"email": [None, "bob@example.com"]},
    {"username": ["alice", "carol"]},
    {"department.name": ["Sales", "Support"]},
    {"department.code": [None]},
    {"department.name": "Support", "email": ["bob@example.com", "x"]},
])
def test_sql_filter_agrees_with_in_memory_check(directory, entity_helper, db_session, where_params):
    spec = WhereClauseSpec(User, where_params)

    # Relationships load lazily while the session is open
    expected = [user.username for user in db_session.query(User).all() if spec.is_satisfied_by(user)]

    assert _names(entity_helper.find_all(User, where_params)) == sorted(expected)
