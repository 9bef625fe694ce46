from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.roles import resolve_user


class MeView(APIView):
    def get(self, request):
        identity = resolve_user(request.user)
        return Response({
            "id": request.user.pk,
            "username": request.user.username,
            "email": request.user.email,
            "role": identity.role,
            "residential_id": identity.residential_id,
            "is_blocked": identity.is_blocked,
        })
