import json

from taskboard.api.errors import error_response
from taskboard.errors import InternalError, NotFound, Unauthenticated


def _body(response):
    return json.loads(response.body)


def test_not_found_envelope():
    response = error_response(NotFound())
    assert response.status_code == 404
    assert _body(response) == {"error": "NOT_FOUND", "message": "Resource not found"}


def test_unauthenticated_carries_bearer_challenge():
    response = error_response(Unauthenticated())
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_internal_error_hides_details():
    response = error_response(InternalError())
    assert response.status_code == 500
    assert _body(response) == {"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
