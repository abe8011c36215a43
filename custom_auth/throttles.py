"""Per-user rate limits for the purchase, skip and review endpoints."""

from rest_framework.throttling import SimpleRateThrottle


class _PerUserThrottle(SimpleRateThrottle):
    # Anonymous traffic is handled by the permission classes, not here
    writes_only = False

    def get_cache_key(self, request, view):
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return None
        if self.writes_only and request.method in ("GET", "HEAD", "OPTIONS"):
            return None
        return self.cache_format % {"scope": self.scope, "ident": user.pk}


class AuthenticatedBurstThrottle(_PerUserThrottle):
    """Caps rapid repeated writes (double-submitted purchases, skip spam)."""

    scope = "auth_burst"
    writes_only = True


class AuthenticatedDailyThrottle(_PerUserThrottle):
    scope = "auth_daily"
