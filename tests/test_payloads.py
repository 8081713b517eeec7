import json
from datetime import date

import pytest

from core.settings import OUTBOX
from services.payloads import (
    InvalidSessionError,
    SessionContext,
    prepare_payload,
    response_error,
    session_from_disk,
    sign_in,
    sign_out,
    validate_user_id,
)
from storage.session_store import SessionState, load_session, save_session, update_session

from conftest import USER_ID


def test_missing_title_and_weekdays_get_defaults(session):
    data = prepare_payload({"descripcion": "algo"}, session)
    assert data["titulo"] == OUTBOX.default_title
    assert data["diasSemana"] == list(OUTBOX.default_weekdays)
    assert data["descripcion"] == "algo"


def test_blank_title_and_empty_weekdays_get_defaults(session):
    data = prepare_payload({"titulo": "   ", "diasSemana": []}, session)
    assert data["titulo"] == "Sin título"
    assert data["diasSemana"] == ["lunes"]


def test_existing_values_are_kept_and_input_not_mutated(session):
    original = {"titulo": "Leer", "diasSemana": ["martes", "jueves"]}
    data = prepare_payload(original, session)
    assert data["titulo"] == "Leer"
    assert data["diasSemana"] == ["martes", "jueves"]
    assert "usuarioId" not in original


def test_user_id_is_overwritten_by_current_session(session):
    data = prepare_payload({"titulo": "Leer", "usuarioId": "000000000000000000000000"}, session)
    assert data["usuarioId"] == session.user_id


@pytest.mark.parametrize("user_id", [None, "", "abc", "zzzzzzzzzzzzzzzzzzzzzzzz", 12345])
def test_invalid_identity_is_rejected(user_id):
    assert validate_user_id(user_id) is False
    with pytest.raises(InvalidSessionError):
        prepare_payload({"titulo": "Leer"}, SessionContext(user_id=user_id))


def test_response_error_detection():
    assert response_error({"_id": "1", "titulo": "Leer"}) is None
    assert response_error({"message": "Usuario no encontrado"}) == "Usuario no encontrado"
    assert response_error({"error": "bad"}) == "bad"
    assert response_error({"message": ""}) is None
    assert response_error(["unexpected"]) is not None


def test_session_round_trip(tmp_path, session):
    path = tmp_path / "session.json"
    assert load_session(path) == SessionState()

    save_session(SessionState(user_id=session.user_id, token="t"), path)
    assert json.loads(path.read_text(encoding="utf-8"))["user_id"] == session.user_id

    update_session(path, token="t2", unknown="ignored")
    assert session_from_disk(path) == SessionContext(user_id=session.user_id, token="t2")


def test_corrupt_session_file_reads_as_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert session_from_disk(path).is_valid() is False


def test_non_json_values_become_strings(session):
    data = prepare_payload({"titulo": "Leer", "inicio": date(2024, 5, 1)}, session)
    assert data["inicio"] == "2024-05-01"


def test_sign_in_writes_session_file(tmp_path):
    path = tmp_path / "session.json"

    context = sign_in(USER_ID, token="tok", path=path)

    assert context == SessionContext(user_id=USER_ID, token="tok")
    assert session_from_disk(path) == context


def test_sign_in_rejects_malformed_ids(tmp_path):
    path = tmp_path / "session.json"
    with pytest.raises(InvalidSessionError):
        sign_in("not-an-id", path=path)
    assert not path.exists()


def test_sign_out_clears_session(tmp_path):
    path = tmp_path / "session.json"
    sign_in(USER_ID, path=path)
    sign_out(path)
    assert session_from_disk(path).is_valid() is False
