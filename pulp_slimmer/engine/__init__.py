"""
Reconciliation Engine — Task waiting, resource reconciliation, and the
create-new / use-existing pipelines.
"""
