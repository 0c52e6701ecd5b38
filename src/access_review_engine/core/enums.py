"""Enumerations shared by the ORM models, services, and API schemas.

Values are upper-case strings and are stored verbatim in the database.
"""

from enum import StrEnum


class UserRole(StrEnum):
    ADMINISTRATOR = "ADMINISTRATOR"
    ISO = "ISO"
    ANALYST = "ANALYST"
    AUDITOR = "AUDITOR"


class DataClassification(StrEnum):
    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"
    CONFIDENTIAL = "CONFIDENTIAL"
    RESTRICTED = "RESTRICTED"


class BusinessCriticality(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Severity(StrEnum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class ReviewFrequency(StrEnum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUAL = "SEMI_ANNUAL"
    ANNUAL = "ANNUAL"


class AttestationType(StrEnum):
    SINGLE = "SINGLE"
    DUAL = "DUAL"


class CheckType(StrEnum):
    EMPLOYMENT_STATUS = "EMPLOYMENT_STATUS"
    SEGREGATION_OF_DUTIES = "SEGREGATION_OF_DUTIES"
    PRIVILEGED_ACCESS = "PRIVILEGED_ACCESS"
    DORMANT_ACCOUNT = "DORMANT_ACCOUNT"
    ACCESS_APPROPRIATENESS = "ACCESS_APPROPRIATENESS"
    ACCESS_AUTHORIZATION = "ACCESS_AUTHORIZATION"
    CUSTOM = "CUSTOM"


class EmploymentStatus(StrEnum):
    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"
    LEAVE = "LEAVE"
    CONTRACTOR = "CONTRACTOR"
    UNKNOWN = "UNKNOWN"


class ReviewCycleStatus(StrEnum):
    DRAFT = "DRAFT"
    DATA_COLLECTION = "DATA_COLLECTION"
    ANALYSIS_PENDING = "ANALYSIS_PENDING"
    ANALYSIS_COMPLETE = "ANALYSIS_COMPLETE"
    IN_REVIEW = "IN_REVIEW"
    PENDING_ATTESTATION = "PENDING_ATTESTATION"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class AccessReviewStatus(StrEnum):
    PENDING = "PENDING"
    AUTO_APPROVED = "AUTO_APPROVED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    APPROVED = "APPROVED"
    REMEDIATION = "REMEDIATION"
    EXCEPTION = "EXCEPTION"


class FindingType(StrEnum):
    TERMINATED_ACCESS = "TERMINATED_ACCESS"
    ORPHANED_ACCOUNT = "ORPHANED_ACCOUNT"
    SOD_CONFLICT = "SOD_CONFLICT"
    PRIVILEGED_ACCESS = "PRIVILEGED_ACCESS"
    DORMANT_ACCOUNT = "DORMANT_ACCOUNT"
    INAPPROPRIATE_ACCESS = "INAPPROPRIATE_ACCESS"
    UNAUTHORIZED_CHANGE = "UNAUTHORIZED_CHANGE"
    MISSING_AUTHORIZATION = "MISSING_AUTHORIZATION"
    OTHER = "OTHER"


class FindingStatus(StrEnum):
    OPEN = "OPEN"
    IN_REVIEW = "IN_REVIEW"
    PENDING_REMEDIATION = "PENDING_REMEDIATION"
    REMEDIATED = "REMEDIATED"
    EXCEPTION_APPROVED = "EXCEPTION_APPROVED"
    DISMISSED = "DISMISSED"
    CLOSED = "CLOSED"


class FindingDecision(StrEnum):
    REMEDIATE = "REMEDIATE"
    EXCEPTION = "EXCEPTION"
    DISMISS = "DISMISS"


class ReportType(StrEnum):
    EXECUTIVE_SUMMARY = "executive_summary"
    DETAILED_FINDINGS = "detailed_findings"
    REMEDIATION_TRACKER = "remediation_tracker"
    ATTESTATION_CERTIFICATE = "attestation_certificate"
    EVIDENCE_PACKAGE = "evidence_package"


class ReportFormat(StrEnum):
    PDF = "PDF"
    DOCX = "DOCX"
    XLSX = "XLSX"
    ZIP = "ZIP"
