"""Tests for custom exception classes."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from entrydesk.exceptions import (
    AppError,
    ConfigurationError,
    EmptyPhoneNotice,
    MethodNotAllowedError,
    UpstreamProtocolError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    ValidationError,
)


class TestAppError:
    """Tests for base AppError class."""

    def test_default_status_code(self) -> None:
        error = AppError('Something went wrong')
        assert error.status_code == 500
        assert error.message == 'Something went wrong'

    def test_to_dict_without_detail(self) -> None:
        error = AppError('Error message')
        assert error.to_dict() == {'ok': False, 'message': 'Error message'}

    def test_to_dict_with_detail(self) -> None:
        error = AppError('Error', detail='Additional info')
        result = error.to_dict()
        assert result['ok'] is False
        assert result['message'] == 'Error'
        assert result['detail'] == 'Additional info'


class TestValidationError:
    """Tests for ValidationError class."""

    def test_status_code_is_400(self) -> None:
        error = ValidationError('invalid_qty')
        assert error.status_code == 400

    def test_stores_field(self) -> None:
        error = ValidationError('missing_phone', field='phone')
        assert error.field == 'phone'
        assert error.to_dict() == {'ok': False, 'message': 'missing_phone'}


class TestEmptyPhoneNotice:
    """Tests for EmptyPhoneNotice class."""

    def test_is_not_an_http_error(self) -> None:
        notice = EmptyPhoneNotice()
        assert notice.status_code == 200
        assert notice.to_dict() == {'ok': False, 'message': 'empty_phone'}


class TestMethodNotAllowedError:
    """Tests for MethodNotAllowedError class."""

    def test_status_code_is_405(self) -> None:
        error = MethodNotAllowedError('GET')
        assert error.status_code == 405
        assert error.message == 'Method not allowed'
        assert error.allowed == ('POST',)


class TestConfigurationError:
    """Tests for ConfigurationError class."""

    def test_status_code_is_500(self) -> None:
        error = ConfigurationError('GAS_API_URL')
        assert error.status_code == 500

    def test_message_names_missing_variable(self) -> None:
        error = ConfigurationError('API_SECRET')
        assert error.message == 'Server config missing: API_SECRET'
        assert error.config_name == 'API_SECRET'

    def test_invalid_value_message(self) -> None:
        error = ConfigurationError('UPSTREAM_TIMEOUT_SECONDS', reason='bad')
        assert error.message == 'Server config invalid: UPSTREAM_TIMEOUT_SECONDS'


class TestUpstreamErrors:
    """Tests for backend failure classes."""

    def test_protocol_error_carries_raw_snippet(self) -> None:
        error = UpstreamProtocolError('<html>oops</html>')
        assert error.status_code == 502
        assert error.to_dict() == {
            'ok': False,
            'message': 'GAS_non_json',
            'raw': '<html>oops</html>',
        }

    def test_unavailable_message_is_operation_specific(self) -> None:
        error = UpstreamUnavailableError('lookup', 'ConnectionRefusedError')
        assert error.status_code == 504
        assert error.message == 'lookup_failed'
        assert error.to_dict()['detail'] == 'ConnectionRefusedError'

    def test_timeout_is_an_unavailable_error(self) -> None:
        error = UpstreamTimeoutError('checkin', 'timed out after 8s')
        assert isinstance(error, UpstreamUnavailableError)
        assert error.status_code == 504
        assert error.message == 'checkin_failed'
