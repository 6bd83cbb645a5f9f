import pytest

from nvmctrl.core.exceptions import (
    AddressOutOfRangeError,
    BackendBusyError,
    ConfigurationError,
    NvmCtrlError,
    ProtocolError,
)


class TestNvmCtrlError:
    """Test NvmCtrlError base exception class."""

    def test_error_creation_basic(self):
        msg = "Test error message"
        exc = NvmCtrlError(msg)

        assert str(exc) == msg
        assert exc.details == {}

    def test_error_with_details(self):
        details = {"key1": "value1", "key2": 42}
        exc = NvmCtrlError("Test error message", details=details)

        assert exc.details == details

    def test_none_details_defaults_to_empty(self):
        exc = NvmCtrlError("message", details=None)

        assert exc.details == {}

    def test_raise_and_catch_with_context(self):
        try:
            try:
                raise ValueError("Original error")
            except ValueError as e:
                raise NvmCtrlError("Wrapped error") from e
        except NvmCtrlError as e:
            assert "Wrapped error" == str(e)
            assert isinstance(e.__cause__, ValueError)


class TestConfigurationError:
    """Test ConfigurationError exception class."""

    def test_message_only_is_treated_as_key(self):
        exc = ConfigurationError(config_key="Missing config key")

        assert "configuration" in str(exc).lower()
        assert "Missing config key" in str(exc)
        assert exc.config_key == "configuration"

    def test_key_and_message(self):
        exc = ConfigurationError(
            config_key="topology.bus_width", message="must be positive"
        )

        assert "topology.bus_width" in str(exc)
        assert "must be positive" in str(exc)
        assert exc.config_key == "topology.bus_width"

    def test_no_args(self):
        exc = ConfigurationError()

        assert "Invalid configuration" in str(exc)
        assert exc.details == {}

    def test_inheritance(self):
        with pytest.raises(NvmCtrlError):
            raise ConfigurationError(config_key="test")


class TestAddressOutOfRangeError:
    def test_fields_and_message(self):
        exc = AddressOutOfRangeError("page", 300, 256)

        assert isinstance(exc, NvmCtrlError)
        assert exc.field == "page"
        assert exc.value == 300
        assert exc.limit == 256
        assert "page=300" in str(exc)
        assert exc.details == {"field": "page", "value": 300, "limit": 256}

    def test_extra_details_preserved(self):
        exc = AddressOutOfRangeError("bank", 3, 2, details={"partition": "DATA"})

        assert exc.details["partition"] == "DATA"
        assert exc.details["field"] == "bank"


def test_protocol_error_is_nvmctrl_error():
    exc = ProtocolError("two op bits", details={"rd": True, "prog": True})
    assert isinstance(exc, NvmCtrlError)
    assert exc.details["prog"] is True


def test_backend_busy_error_default_message():
    exc = BackendBusyError()
    assert "in flight" in str(exc)
    assert exc.details == {}
