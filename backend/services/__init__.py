"""
Services package for the CRM reporting service
Contains the record store gateway and the analytics report builders
"""

__all__ = [
    'record_store',
    'report_periods',
    'dashboard_service',
    'leads_analytics_service',
    'sales_analytics_service',
]
