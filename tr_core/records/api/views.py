# tr_core/records/api/views.py
from __future__ import annotations

from uuid import UUID

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tr_core.common.api.exceptions import NotFound
from tr_core.common.api.pagination import page_params_from_request, paginated_payload
from tr_core.iam.authz import Action
from tr_core.iam.guards import guard_request
from tr_core.records.api.serializers import (
    DaepStudentSerializer,
    DeletedRecordListSerializer,
    DeletedRecordSerializer,
    RecordPageSerializer,
    RecordSerializer,
    RecordWriteSerializer,
)
from tr_core.records.models import Record
from tr_core.records.selectors import (
    get_live_record,
    list_daep_students,
    list_deleted_records,
    list_records,
    records_requiring_action,
)
from tr_core.records.services import RecordData, RecordService


def _record_pk(pk) -> UUID:
    try:
        return UUID(str(pk))
    except (TypeError, ValueError):
        raise NotFound()


def _deleted_payload(rows) -> dict:
    return {"records": DeletedRecordSerializer(rows, many=True).data, "total": len(rows)}


@extend_schema_view(
    list=extend_schema(
        tags=["Records"],
        parameters=[
            OpenApiParameter("status", OpenApiTypes.STR, OpenApiParameter.QUERY, enum=["all", "active", "inactive", "expired"]),
            OpenApiParameter("search", OpenApiTypes.STR, OpenApiParameter.QUERY, description="First name, last name or school id."),
            OpenApiParameter("campus_id", OpenApiTypes.STR, OpenApiParameter.QUERY),
            OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY),
            OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY),
        ],
        responses={200: RecordPageSerializer},
    ),
    retrieve=extend_schema(tags=["Records"], responses={200: RecordSerializer}),
    create=extend_schema(tags=["Records"], request=RecordWriteSerializer, responses={201: RecordSerializer}),
    partial_update=extend_schema(tags=["Records"], request=RecordWriteSerializer, responses={200: RecordSerializer}),
    destroy=extend_schema(tags=["Records"], description="Soft delete.", responses={200: RecordSerializer}),
    deleted=extend_schema(tags=["Records"], responses={200: DeletedRecordListSerializer}),
    requiring_action=extend_schema(tags=["Records"], responses={200: DeletedRecordListSerializer}),
    daep=extend_schema(tags=["Records"], responses={200: DaepStudentSerializer(many=True)}),
    restore=extend_schema(tags=["Records"], request=None, responses={200: RecordSerializer}),
    purge=extend_schema(tags=["Records"], request=None, responses={204: None}),
)
class RecordViewSet(viewsets.ViewSet):
    """
    Trespass records of the effective tenant.
    """
    permission_classes = [IsAuthenticated]

    serializer_class = RecordSerializer
    queryset = Record.objects.none()

    def list(self, request):
        _, tenant_id = guard_request(request, Action.RECORD_VIEW)
        params = page_params_from_request(request, default_limit=50, max_limit=settings.RECORDS_LIST_MAX_LIMIT)
        page = list_records(tenant_id=tenant_id, filters=request.query_params, params=params)
        return Response(paginated_payload(page, RecordSerializer, items_key="records"), status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        _, tenant_id = guard_request(request, Action.RECORD_VIEW)
        obj = get_live_record(tenant_id=tenant_id, record_id=_record_pk(pk))
        if obj is None:
            raise NotFound()
        return Response(RecordSerializer(obj).data, status=status.HTTP_200_OK)

    def create(self, request):
        actor, tenant_id = guard_request(request, Action.RECORD_CREATE)
        s = RecordWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        obj = RecordService.create(actor=actor, tenant_id=tenant_id, data=RecordData.from_mapping(s.validated_data))
        return Response(RecordSerializer(obj).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.RECORD_UPDATE)
        s = RecordWriteSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)

        obj = RecordService.update(
            actor=actor,
            tenant_id=tenant_id,
            record_id=_record_pk(pk),
            data=RecordData.from_mapping(s.validated_data),
        )
        return Response(RecordSerializer(obj).data, status=status.HTTP_200_OK)

    def destroy(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.RECORD_DELETE)
        obj = RecordService.soft_delete(actor=actor, tenant_id=tenant_id, record_id=_record_pk(pk))
        return Response(RecordSerializer(obj).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="deleted")
    def deleted(self, request):
        _, tenant_id = guard_request(request, Action.RECORD_LIST_DELETED)
        return Response(_deleted_payload(list_deleted_records(tenant_id=tenant_id)), status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="requiring-action")
    def requiring_action(self, request):
        _, tenant_id = guard_request(request, Action.RECORD_LIST_DELETED)
        return Response(_deleted_payload(records_requiring_action(tenant_id=tenant_id)), status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="daep")
    def daep(self, request):
        _, tenant_id = guard_request(request, Action.DAEP_VIEW)
        rows = list_daep_students(tenant_id=tenant_id)
        return Response(DaepStudentSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="restore")
    def restore(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.RECORD_RESTORE)
        obj = RecordService.restore(actor=actor, tenant_id=tenant_id, record_id=_record_pk(pk))
        return Response(RecordSerializer(obj).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="purge")
    def purge(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.RECORD_PURGE)
        RecordService.permanently_delete(actor=actor, tenant_id=tenant_id, record_id=_record_pk(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)
