"""Errors raised during certificate, signature and name validation."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class ErrorKind(enum.Enum):
    """The kinds of failure that validation can report."""

    BAD_DER = "BadDer"
    BAD_DER_TIME = "BadDerTime"
    CA_USED_AS_END_ENTITY = "CaUsedAsEndEntity"
    CERT_EXPIRED = "CertExpired"
    CERT_NOT_VALID_FOR_NAME = "CertNotValidForName"
    CERT_NOT_VALID_YET = "CertNotValidYet"
    CERT_REVOKED = "CertRevoked"
    CRL_EXPIRED = "CrlExpired"
    END_ENTITY_USED_AS_CA = "EndEntityUsedAsCa"
    EXTENSION_VALUE_INVALID = "ExtensionValueInvalid"
    INVALID_CERT_VALIDITY = "InvalidCertValidity"
    INVALID_CRL_NUMBER = "InvalidCrlNumber"
    INVALID_NETWORK_MASK_CONSTRAINT = "InvalidNetworkMaskConstraint"
    INVALID_SERIAL_NUMBER = "InvalidSerialNumber"
    INVALID_CRL_SIGNATURE_FOR_PUBLIC_KEY = "InvalidCrlSignatureForPublicKey"
    INVALID_SIGNATURE_FOR_PUBLIC_KEY = "InvalidSignatureForPublicKey"
    ISSUER_NOT_CRL_SIGNER = "IssuerNotCrlSigner"
    MALFORMED_DNS_IDENTIFIER = "MalformedDnsIdentifier"
    MALFORMED_EXTENSIONS = "MalformedExtensions"
    MALFORMED_NAME_CONSTRAINT = "MalformedNameConstraint"
    MAXIMUM_NAME_CONSTRAINT_COMPARISONS_EXCEEDED = "MaximumNameConstraintComparisonsExceeded"
    MAXIMUM_PATH_BUILD_CALLS_EXCEEDED = "MaximumPathBuildCallsExceeded"
    MAXIMUM_PATH_DEPTH_EXCEEDED = "MaximumPathDepthExceeded"
    MAXIMUM_SIGNATURE_CHECKS_EXCEEDED = "MaximumSignatureChecksExceeded"
    NAME_CONSTRAINT_VIOLATION = "NameConstraintViolation"
    PATH_LEN_CONSTRAINT_VIOLATED = "PathLenConstraintViolated"
    REQUIRED_EKU_NOT_FOUND = "RequiredEkuNotFound"
    REQUIRED_EKU_NOT_FOUND_CONTEXT = "RequiredEkuNotFoundContext"
    SIGNATURE_ALGORITHM_MISMATCH = "SignatureAlgorithmMismatch"
    TRAILING_DATA = "TrailingData"
    UNKNOWN_ISSUER = "UnknownIssuer"
    UNKNOWN_REVOCATION_STATUS = "UnknownRevocationStatus"
    UNSUPPORTED_CERT_VERSION = "UnsupportedCertVersion"
    UNSUPPORTED_CRITICAL_EXTENSION = "UnsupportedCriticalExtension"
    UNSUPPORTED_CRL_ISSUING_DISTRIBUTION_POINT = "UnsupportedCrlIssuingDistributionPoint"
    UNSUPPORTED_CRL_VERSION = "UnsupportedCrlVersion"
    UNSUPPORTED_DELTA_CRL = "UnsupportedDeltaCrl"
    UNSUPPORTED_INDIRECT_CRL = "UnsupportedIndirectCrl"
    UNSUPPORTED_NAME_TYPE = "UnsupportedNameType"
    UNSUPPORTED_REVOCATION_REASON = "UnsupportedRevocationReason"
    UNSUPPORTED_REVOCATION_REASONS_PARTITIONING = "UnsupportedRevocationReasonsPartitioning"
    UNSUPPORTED_CRL_SIGNATURE_ALGORITHM = "UnsupportedCrlSignatureAlgorithm"
    UNSUPPORTED_SIGNATURE_ALGORITHM = "UnsupportedSignatureAlgorithm"
    UNSUPPORTED_CRL_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY = (
        "UnsupportedCrlSignatureAlgorithmForPublicKey"
    )
    UNSUPPORTED_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY = "UnsupportedSignatureAlgorithmForPublicKey"


class DerTypeId(enum.Enum):
    """The DER type in which trailing data was found."""

    BIT_STRING = "BitString"
    BOOL = "Bool"
    CERTIFICATE = "Certificate"
    CERTIFICATE_EXTENSIONS = "CertificateExtensions"
    CERTIFICATE_TBS_CERTIFICATE = "CertificateTbsCertificate"
    CERT_REVOCATION_LIST = "CertRevocationList"
    CERT_REVOCATION_LIST_EXTENSION = "CertRevocationListExtension"
    CRL_DISTRIBUTION_POINT = "CrlDistributionPoint"
    COMMON_NAME_INNER = "CommonNameInner"
    COMMON_NAME_OUTER = "CommonNameOuter"
    DISTRIBUTION_POINT_NAME = "DistributionPointName"
    EXTENSION = "Extension"
    GENERAL_NAME = "GeneralName"
    REVOCATION_REASON = "RevocationReason"
    SIGNATURE = "Signature"
    SIGNATURE_ALGORITHM = "SignatureAlgorithm"
    SIGNED_DATA = "SignedData"
    SUBJECT_PUBLIC_KEY_INFO = "SubjectPublicKeyInfo"
    TIME = "Time"
    TRUST_ANCHOR_V1 = "TrustAnchorV1"
    TRUST_ANCHOR_V1_TBS_CERTIFICATE = "TrustAnchorV1TbsCertificate"
    U8 = "U8"
    REVOKED_CERTIFICATE = "RevokedCertificate"
    REVOKED_CERTIFICATE_EXTENSION = "RevokedCertificateExtension"
    REVOKED_CERT_ENTRY = "RevokedCertEntry"
    ISSUING_DISTRIBUTION_POINT = "IssuingDistributionPoint"


@dataclass(frozen=True)
class InvalidNameContext:
    """Context for a certificate that is not valid for the expected name."""

    expected: str
    presented: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "presented", tuple(self.presented))


_K = ErrorKind

_RANKS: dict[ErrorKind, int] = {
    # Errors related to certificate validity.
    _K.CERT_NOT_VALID_YET: 290,
    _K.CERT_EXPIRED: 290,
    _K.CERT_NOT_VALID_FOR_NAME: 280,
    _K.CERT_REVOKED: 270,
    _K.UNKNOWN_REVOCATION_STATUS: 270,
    _K.CRL_EXPIRED: 270,
    _K.INVALID_CRL_SIGNATURE_FOR_PUBLIC_KEY: 260,
    _K.INVALID_SIGNATURE_FOR_PUBLIC_KEY: 260,
    _K.SIGNATURE_ALGORITHM_MISMATCH: 250,
    _K.REQUIRED_EKU_NOT_FOUND: 240,
    _K.REQUIRED_EKU_NOT_FOUND_CONTEXT: 240,
    _K.NAME_CONSTRAINT_VIOLATION: 230,
    _K.PATH_LEN_CONSTRAINT_VIOLATED: 220,
    _K.CA_USED_AS_END_ENTITY: 210,
    _K.END_ENTITY_USED_AS_CA: 210,
    _K.ISSUER_NOT_CRL_SIGNER: 200,
    # Supported features used in an invalid way.
    _K.INVALID_CERT_VALIDITY: 190,
    _K.INVALID_NETWORK_MASK_CONSTRAINT: 180,
    _K.INVALID_SERIAL_NUMBER: 170,
    _K.INVALID_CRL_NUMBER: 160,
    # Unsupported features.
    _K.UNSUPPORTED_CRL_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY: 150,
    _K.UNSUPPORTED_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY: 150,
    _K.UNSUPPORTED_CRL_SIGNATURE_ALGORITHM: 140,
    _K.UNSUPPORTED_SIGNATURE_ALGORITHM: 140,
    _K.UNSUPPORTED_CRITICAL_EXTENSION: 130,
    _K.UNSUPPORTED_CERT_VERSION: 130,
    _K.UNSUPPORTED_CRL_VERSION: 120,
    _K.UNSUPPORTED_DELTA_CRL: 110,
    _K.UNSUPPORTED_INDIRECT_CRL: 100,
    _K.UNSUPPORTED_NAME_TYPE: 95,
    _K.UNSUPPORTED_REVOCATION_REASON: 90,
    _K.UNSUPPORTED_REVOCATION_REASONS_PARTITIONING: 80,
    _K.UNSUPPORTED_CRL_ISSUING_DISTRIBUTION_POINT: 70,
    _K.MAXIMUM_PATH_DEPTH_EXCEEDED: 61,
    # Malformed data.
    _K.MALFORMED_DNS_IDENTIFIER: 60,
    _K.MALFORMED_NAME_CONSTRAINT: 50,
    _K.MALFORMED_EXTENSIONS: 40,
    _K.TRAILING_DATA: 40,
    _K.EXTENSION_VALUE_INVALID: 30,
    # Generic DER errors.
    _K.BAD_DER_TIME: 20,
    _K.BAD_DER: 10,
    # Special cases, not subject to ranking.
    _K.MAXIMUM_SIGNATURE_CHECKS_EXCEEDED: 0,
    _K.MAXIMUM_PATH_BUILD_CALLS_EXCEEDED: 0,
    _K.MAXIMUM_NAME_CONSTRAINT_COMPARISONS_EXCEEDED: 0,
    _K.UNKNOWN_ISSUER: 0,
}

_FATAL = frozenset(
    {
        _K.MAXIMUM_SIGNATURE_CHECKS_EXCEEDED,
        _K.MAXIMUM_PATH_BUILD_CALLS_EXCEEDED,
        _K.MAXIMUM_NAME_CONSTRAINT_COMPARISONS_EXCEEDED,
    }
)

# Fields that each kind carries; kinds not listed carry none.
_FIELDS: dict[ErrorKind, tuple[str, ...]] = {
    _K.CERT_EXPIRED: ("time", "not_after"),
    _K.CERT_NOT_VALID_YET: ("time", "not_before"),
    _K.CRL_EXPIRED: ("time", "next_update"),
    _K.CERT_NOT_VALID_FOR_NAME: ("context",),
    _K.REQUIRED_EKU_NOT_FOUND_CONTEXT: ("context",),
    _K.TRAILING_DATA: ("context",),
}

_CONTEXT_TYPES: dict[ErrorKind, type] = {
    _K.CERT_NOT_VALID_FOR_NAME: InvalidNameContext,
    _K.TRAILING_DATA: DerTypeId,
}

_ALL_FIELDS = ("time", "not_before", "not_after", "next_update", "context")


class WebPkiError(Exception):
    """A failure of certificate, signature or name validation."""

    def __init__(
        self,
        kind: ErrorKind,
        *,
        time: Any = None,
        not_before: Any = None,
        not_after: Any = None,
        next_update: Any = None,
        context: Any = None,
    ) -> None:
        kind = ErrorKind(kind)
        given = {
            "time": time,
            "not_before": not_before,
            "not_after": not_after,
            "next_update": next_update,
            "context": context,
        }
        wanted = _FIELDS.get(kind, ())
        for name in _ALL_FIELDS:
            present = given[name] is not None
            if name in wanted and not present:
                raise ValueError(f"{kind.value} requires {name}")
            if name not in wanted and present:
                raise ValueError(f"{kind.value} does not take {name}")
        expected_type = _CONTEXT_TYPES.get(kind)
        if expected_type is not None and not isinstance(context, expected_type):
            raise TypeError(f"{kind.value} context must be {expected_type.__name__}")

        self.kind = kind
        self.time = time
        self.not_before = not_before
        self.not_after = not_after
        self.next_update = next_update
        self.context = context
        super().__init__(self._describe())

    @property
    def _details(self) -> tuple[tuple[str, Any], ...]:
        return tuple((name, getattr(self, name)) for name in _FIELDS.get(self.kind, ()))

    def _describe(self) -> str:
        details = self._details
        if not details:
            return self.kind.value
        if details[0][0] == "context":
            value = details[0][1]
            shown = value.value if isinstance(value, DerTypeId) else repr(value)
            return f"{self.kind.value}({shown})"
        inner = ", ".join(f"{name}: {value!r}" for name, value in details)
        return f"{self.kind.value} {{ {inner} }}"

    def __str__(self) -> str:
        return self._describe()

    def __repr__(self) -> str:
        return f"WebPkiError({self._describe()})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WebPkiError):
            return NotImplemented
        return self.kind is other.kind and self._details == other._details

    def __hash__(self) -> int:
        return hash((self.kind, self._details))

    def rank(self) -> int:
        """How specific this error is; higher ranks are more useful to a user."""
        return _RANKS[self.kind]

    def most_specific(self, new: WebPkiError) -> WebPkiError:
        """Return whichever of this error and ``new`` ranks higher, preferring this one on ties."""
        return self if self.rank() >= new.rank() else new

    def is_fatal(self) -> bool:
        """Whether this error should stop any further path building."""
        return self.kind in _FATAL