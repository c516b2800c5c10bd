"""
Table and column names of the hosted CRM record store.
All analytics queries should use these constants instead of literals.
"""

# ============================================================================
# TABLES
# ============================================================================

LEADS = "leads"
CUSTOMERS = "customers"
ORDERS = "orders"
INVOICES = "invoices"
APPOINTMENTS = "appointments"

# ============================================================================
# COLUMNS
# ============================================================================

ID = "id"
STATUS = "status"
CREATED_AT = "createdAt"

# Leads
LEAD_SOURCE = "source"
CONVERTED_AT = "convertedAt"

# Orders / invoices
TOTAL = "total"
PAYMENT_METHOD = "payment_method"
PAID_AT = "paidAt"
DUE_DATE = "dueDate"

# Appointments
SCHEDULED_AT = "scheduledAt"

# ============================================================================
# STATUS VALUES
# ============================================================================

LEAD_STATUS_CONVERTED = "CONVERTED"
INVOICE_STATUS_PAID = "PAID"
INVOICE_STATUS_PENDING = "PENDING"

# Label used when a grouping column is empty
UNKNOWN_LABEL = "Unknown"
