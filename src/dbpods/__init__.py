"""Administration helpers for ClickHouse and PostgreSQL pods in Kubernetes."""
