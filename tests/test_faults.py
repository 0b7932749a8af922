"""
Faults System (letsql.faults)

Tests Fault, FaultDomain, Severity and the domain fault classes.
"""

import pytest

from letsql.faults import (
    CompileError,
    CompileFault,
    ConfigInvalidFault,
    ConfigMissingFault,
    DataIntegrityError,
    DataIntegrityFault,
    Fault,
    FaultDomain,
    PermanentStoreFault,
    RetryExhaustedFault,
    SerializationError,
    SerializationFault,
    Severity,
    StoreConnectionFault,
    TransientStoreError,
    TransientStoreFault,
    UsageError,
    UsageFault,
)
from letsql.faults.core import DOMAIN_DEFAULTS


# ============================================================================
# Severity & FaultDomain
# ============================================================================

class TestSeverity:

    def test_values(self):
        assert Severity.INFO == "info"
        assert Severity.WARN == "warn"
        assert Severity.ERROR == "error"
        assert Severity.FATAL == "fatal"


class TestFaultDomain:

    def test_standard_domains(self):
        assert FaultDomain.CONFIG.name == "config"
        assert FaultDomain.MODEL.name == "model"
        assert FaultDomain.QUERY.name == "query"
        assert FaultDomain.STORE.name == "store"
        assert FaultDomain.DATA.name == "data"

    def test_domain_equality(self):
        assert FaultDomain("store") == FaultDomain.STORE
        assert FaultDomain("store") != FaultDomain.DATA
        assert FaultDomain.STORE == "store"

    def test_domain_hashable(self):
        assert FaultDomain("store") in {FaultDomain.STORE}

    def test_every_domain_has_defaults(self):
        for domain in (FaultDomain.CONFIG, FaultDomain.MODEL, FaultDomain.QUERY, FaultDomain.STORE, FaultDomain.DATA):
            assert domain in DOMAIN_DEFAULTS


# ============================================================================
# Fault
# ============================================================================

class TestFault:

    def test_basic_fault(self):
        fault = Fault(code="X", message="boom", domain=FaultDomain.MODEL)
        assert fault.code == "X"
        assert fault.severity == Severity.ERROR
        assert fault.retryable is False
        assert str(fault) == "[X] boom"

    def test_missing_fields_rejected(self):
        with pytest.raises(TypeError):
            Fault(code="X", message="boom")

    def test_config_domain_default_is_fatal(self):
        fault = Fault(code="X", message="boom", domain=FaultDomain.CONFIG)
        assert fault.severity == Severity.FATAL

    def test_to_dict(self):
        fault = Fault(code="X", message="boom", domain=FaultDomain.DATA, metadata={"a": 1})
        assert fault.to_dict() == {
            "code": "X",
            "message": "boom",
            "domain": "data",
            "severity": "error",
            "retryable": False,
            "metadata": {"a": 1},
        }

    def test_is_exception(self):
        with pytest.raises(Fault):
            raise UsageFault("User", "bad call")


# ============================================================================
# Domain faults
# ============================================================================

class TestDomainFaults:

    @pytest.mark.parametrize("fault,code,domain,retryable", [
        (UsageFault("User", "x"), "MODEL_USAGE", FaultDomain.MODEL, False),
        (CompileFault("users", "delete", "x"), "QUERY_COMPILE_FAILED", FaultDomain.QUERY, False),
        (TransientStoreFault("x"), "STORE_TRANSIENT", FaultDomain.STORE, True),
        (PermanentStoreFault("x"), "STORE_PERMANENT", FaultDomain.STORE, False),
        (RetryExhaustedFault(3, "x"), "STORE_RETRY_EXHAUSTED", FaultDomain.STORE, False),
        (StoreConnectionFault("mysql://h/db", "x"), "STORE_CONNECTION_FAILED", FaultDomain.STORE, True),
        (DataIntegrityFault("x"), "DATA_INTEGRITY", FaultDomain.DATA, False),
        (SerializationFault("data", "json", "x"), "DATA_SERIALIZATION", FaultDomain.DATA, False),
        (ConfigInvalidFault("port", "x"), "CONFIG_INVALID", FaultDomain.CONFIG, False),
        (ConfigMissingFault("host"), "CONFIG_MISSING", FaultDomain.CONFIG, False),
    ])
    def test_codes_and_retry_semantics(self, fault, code, domain, retryable):
        assert fault.code == code
        assert fault.domain == domain
        assert fault.retryable is retryable

    def test_serialization_is_data_integrity(self):
        assert issubclass(SerializationFault, DataIntegrityFault)
        fault = SerializationFault("data", "json", "malformed")
        assert fault.metadata["column"] == "data"
        assert fault.metadata["cast"] == "json"

    def test_metadata_merges(self):
        fault = PermanentStoreFault("dup", metadata={"error_code": 1062})
        assert fault.metadata == {"reason": "dup", "error_code": 1062}

    def test_retry_exhausted_metadata(self):
        fault = RetryExhaustedFault(3, "lost connection")
        assert fault.metadata["attempts"] == 3
        assert "3 attempts" in fault.message

    def test_aliases(self):
        assert UsageError is UsageFault
        assert CompileError is CompileFault
        assert TransientStoreError is TransientStoreFault
        assert DataIntegrityError is DataIntegrityFault
        assert SerializationError is SerializationFault
