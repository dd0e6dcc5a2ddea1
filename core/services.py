from .models import AuditLogEntry


class AuditService:
    @staticmethod
    def log(actor_id, action, target_id, meta=None):
        """
        Appends an audit entry.

        Callers run this inside the same transaction.atomic() block as the
        write it documents, so the two commit or roll back together.
        """
        return AuditLogEntry.objects.create(
            actor_id=str(actor_id),
            action=action,
            target_id=str(target_id),
            meta=meta or {},
        )
