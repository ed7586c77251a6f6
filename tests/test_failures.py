from eibvalidate.failures import FailedValidation, find_duplicates


def test_find_duplicates_none():
    assert find_duplicates(["a", "b", "c"]) == []
    assert find_duplicates([]) == []


def test_find_duplicates_in_order_of_repeat():
    assert find_duplicates(["foo", "bar", "bar", "foo"]) == ["bar", "foo"]


def test_find_duplicates_reports_every_repeat():
    assert find_duplicates(["x", "x", "x"]) == ["x", "x"]


def test_find_duplicates_accepts_generator():
    assert find_duplicates(item for item in ["a", "b", "a"]) == ["a"]


def test_failed_validation_fields():
    error = OSError("boom")
    failure = FailedValidation("message", error)
    assert failure.user_message == "message"
    assert failure.error is error
    assert FailedValidation("message").error is None
    assert FailedValidation("message") == FailedValidation("message")