"""
Read access to the capability catalog.
"""
import logging
from collections import OrderedDict

from django.db import DatabaseError

from apps.core.exceptions import StoreUnavailable
from apps.rbac.models import Permission
from apps.rbac.values import Capability

logger = logging.getLogger(__name__)


class PermissionCatalog:
    """
    The set of known capabilities, ordered by category then code.

    Listing never fails: an unseeded or unreachable catalog is empty.
    """

    def list(self):
        """Return every capability ordered by (category, code)."""
        try:
            return [
                Capability.from_model(permission)
                for permission in Permission.objects.order_by('category', 'code')
            ]
        except DatabaseError as e:
            logger.warning(
                "Capability catalog unavailable, returning empty list",
                extra={'error': str(e)}
            )
            return []

    def codes(self):
        """Return every capability code in catalog order."""
        return [capability.code for capability in self.list()]

    def grouped(self):
        """Return capabilities grouped by category, categories in catalog order."""
        grouped = OrderedDict()
        for capability in self.list():
            grouped.setdefault(capability.category, []).append(capability)
        return grouped

    def exists(self, codes):
        """
        Return the subset of ``codes`` present in the catalog.

        Used by write paths for referential checks, so store failures surface.
        """
        codes = set(codes)
        if not codes:
            return set()
        try:
            return set(
                Permission.objects.by_codes(codes).values_list('code', flat=True)
            )
        except DatabaseError as e:
            raise StoreUnavailable(
                "Capability catalog is unavailable",
                details={'error': str(e)}
            ) from e

    def size(self):
        """Number of seeded capabilities; store failures surface."""
        try:
            return Permission.objects.count()
        except DatabaseError as e:
            raise StoreUnavailable(
                "Capability catalog is unavailable",
                details={'error': str(e)}
            ) from e
