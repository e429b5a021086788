from rest_framework import status as http_status
from rest_framework.response import Response


def success(data=None, status: int = http_status.HTTP_200_OK, headers=None) -> Response:
    response = Response({"success": True, "data": data}, status=status, headers=headers)
    response.enveloped = True
    return response


class EnvelopeMixin:
    """Wrap successful viewset responses in ``{"success": true, "data": ...}``."""

    def finalize_response(self, request, response, *args, **kwargs):
        if (
            isinstance(response, Response)
            and not getattr(response, "enveloped", False)
            and 200 <= response.status_code < 300
            and response.status_code != http_status.HTTP_204_NO_CONTENT
        ):
            response.data = {"success": True, "data": response.data}
            response.enveloped = True
        return super().finalize_response(request, response, *args, **kwargs)
