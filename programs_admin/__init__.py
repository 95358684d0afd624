"""Program admin services: Supabase data access, verification and agent workflows, reports."""

from programs_admin.data_access import SnapshotStore, SupabaseStore
from programs_admin.reports import VerificationReportPDF, export_csv
from programs_admin.service import AgentService, ProgramService, VerificationService

__all__ = [
    "SnapshotStore",
    "SupabaseStore",
    "VerificationReportPDF",
    "export_csv",
    "AgentService",
    "ProgramService",
    "VerificationService",
]
