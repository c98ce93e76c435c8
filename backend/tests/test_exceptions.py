from attendo.core.exceptions import (
    AppError,
    ConfigurationError,
    GenerationLockedError,
    PersistenceError,
    PreflightFailedError,
    RegenerationWindowError,
    ResourceNotFoundError,
    SchedulerError,
    TimetableExistsError,
)


def test_scheduler_error_structure():
    err = SchedulerError(message="Test error", details={"foo": "bar"})
    assert err.status_code == 400
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_status_codes():
    assert ResourceNotFoundError("Term", "x").status_code == 404
    assert ResourceNotFoundError("Term", "x").message == "Term with id x not found"
    assert PreflightFailedError("blocked").status_code == 400
    assert TimetableExistsError("exists").status_code == 409
    assert RegenerationWindowError("late").status_code == 403
    assert GenerationLockedError("locked").status_code == 403
    assert PersistenceError("failed").status_code == 500
    assert ConfigurationError("bad schema").status_code == 500
