from .report_mailer import DispatchResult, ReportDispatchGateway, SMTPReportDispatcher

__all__ = ["DispatchResult", "ReportDispatchGateway", "SMTPReportDispatcher"]
