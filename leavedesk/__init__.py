"""Leave and reimbursement approval workflow service."""
