import pytest
from scanning.carrier.response import interpret_response
from scanning.errors import CarrierErrorKind, CarrierSubmissionError


class TestConfirmedResponses:
    def test_confirmation_number_is_returned(self):
        response = interpret_response(200, {"confirmationNumber": "C-100", "status": "OK", "message": "Accepted"})

        assert response.confirmation_number == "C-100"
        assert response.status_code == 200
        assert response.message == "Accepted"

    def test_numeric_confirmation_becomes_text(self):
        assert interpret_response(201, {"confirmationNumber": 98765}).confirmation_number == "98765"

    def test_warnings_do_not_block_confirmation(self):
        body = {
            "code": 200,
            "confirmationNumber": "C-101",
            "messages": [{"keyObject": "skid 001A", "message": ["Late pickup"], "type": "Warning"}],
        }

        response = interpret_response(200, body)

        assert response.confirmation_number == "C-101"
        assert [w.message for w in response.warnings] == ["Late pickup"]
        assert response.warnings[0].key_object == "skid 001A"


class TestUnconfirmedResponses:
    def test_http_error_status(self):
        with pytest.raises(CarrierSubmissionError) as exc_info:
            interpret_response(500, {"message": "Internal error"})

        assert exc_info.value.kind == CarrierErrorKind.HTTP
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Internal error"

    def test_envelope_code_overrides_transport_status(self):
        with pytest.raises(CarrierSubmissionError) as exc_info:
            interpret_response(200, {"code": 400, "messages": [{"message": ["Bad dock"], "type": "Error"}]})

        assert exc_info.value.kind == CarrierErrorKind.HTTP
        assert exc_info.value.status_code == 400
        assert exc_info.value.errors[0].message == "Bad dock"

    def test_field_errors_with_success_status_are_a_rejection(self):
        body = {
            "confirmationNumber": "C-102",
            "errors": [{"field": "skids[0].kanbans[1].boxNumber", "message": "Duplicate box", "keyObject": "001A"}],
        }

        with pytest.raises(CarrierSubmissionError) as exc_info:
            interpret_response(200, body)

        error = exc_info.value
        assert error.kind == CarrierErrorKind.REJECTED
        assert error.errors[0].field == "skids[0].kanbans[1].boxNumber"
        assert error.to_dict()["errors"][0] == {
            "field": "skids[0].kanbans[1].boxNumber",
            "message": "Duplicate box",
            "keyObject": "001A",
        }

    def test_missing_confirmation_number_is_a_rejection(self):
        with pytest.raises(CarrierSubmissionError) as exc_info:
            interpret_response(200, {"status": "OK"})

        assert exc_info.value.kind == CarrierErrorKind.REJECTED

    def test_non_object_body_is_treated_as_empty(self):
        with pytest.raises(CarrierSubmissionError) as exc_info:
            interpret_response(200, ["unexpected"])

        assert exc_info.value.kind == CarrierErrorKind.REJECTED

    def test_plain_string_errors_are_kept(self):
        with pytest.raises(CarrierSubmissionError) as exc_info:
            interpret_response(422, {"errors": ["Trailer number missing"]})

        assert exc_info.value.errors[0].message == "Trailer number missing"
        assert exc_info.value.errors[0].field is None
