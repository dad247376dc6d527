"""
DRF exception handler for the dispatch error taxonomy.

Every domain error carries a `kind`; the response body keeps it so clients
can branch on {"error": kind} instead of parsing messages.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "InvalidState": status.HTTP_409_CONFLICT,
    "ConcurrentModification": status.HTTP_409_CONFLICT,
    "NoCandidateAvailable": status.HTTP_409_CONFLICT,
    "InsufficientFunds": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "InvalidCoordinate": status.HTTP_400_BAD_REQUEST,
    "InvalidLineItem": status.HTTP_400_BAD_REQUEST,
    "InvalidAmount": status.HTTP_400_BAD_REQUEST,
    "InvalidCodCollection": status.HTTP_400_BAD_REQUEST,
}


def dispatch_exception_handler(exc, context):
    kind = getattr(exc, "kind", None)
    if kind not in STATUS_BY_KIND:
        return exception_handler(exc, context)

    body = {"error": kind, "detail": str(exc)}
    # TooFarFromPickup tells the rider how far off they are
    if hasattr(exc, "distance_m"):
        body["distance_m"] = round(exc.distance_m, 1)
        body["radius_m"] = exc.radius_m

    code = STATUS_BY_KIND[kind]
    view = context.get("view")
    logger.info("%s in %s: %s", kind, type(view).__name__ if view else "request", exc)
    return Response(body, status=code)
