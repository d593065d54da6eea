from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


class AIRateThrottle(UserRateThrottle):
    scope = 'ai'


class AIStepRateThrottle(AIRateThrottle):
    """Counts only requests that reach the model; reads are free."""

    def allow_request(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().allow_request(request, view)
