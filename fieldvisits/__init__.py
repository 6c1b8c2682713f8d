"""Field visits service — scheduling, check-in/check-out and audit trail of technician visits."""
