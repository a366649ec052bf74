"""
Views for the notification API.

ViewSets:
    MessageViewSet: The caller's inbox, read state and soft deletion
    PreferenceViewSet: The caller's email category preferences
    BroadcastViewSet: Admin announcements

Endpoints:
    Messages:
        GET    /api/v1/notifications/messages/              - List (paginated, filtered)
        GET    /api/v1/notifications/messages/{id}/         - Detail
        DELETE /api/v1/notifications/messages/{id}/         - Soft delete
        POST   /api/v1/notifications/messages/{id}/read/    - Mark as read
        POST   /api/v1/notifications/messages/read-all/     - Mark all as read
        GET    /api/v1/notifications/messages/unread-count/ - Badge count

    Preferences:
        GET /api/v1/notifications/preferences/ - List categories
        PUT /api/v1/notifications/preferences/ - Update categories

    Broadcasts:
        GET  /api/v1/notifications/broadcasts/            - History (paginated)
        POST /api/v1/notifications/broadcasts/            - Send to all or selected users
        GET  /api/v1/notifications/broadcasts/recipients/ - Search target users
"""

from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
    OpenApiResponse,
)

from notifications.models import Message, MessageBroadcast
from notifications.serializers import (
    BroadcastHistorySerializer,
    BroadcastRecipientSerializer,
    BroadcastRequestSerializer,
    BroadcastResponseSerializer,
    MarkAllReadResponseSerializer,
    MessageSerializer,
    PreferenceListSerializer,
    PreferenceUpdateSerializer,
    UnreadCountSerializer,
)
from notifications.services import (
    RECIPIENT_SEARCH_LIMIT,
    BroadcastService,
    MessageService,
    PreferenceService,
)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        description="Paginated list of the caller's messages, newest first.",
        parameters=[
            OpenApiParameter(
                name="is_read",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Filter by read status (true/false)",
                required=False,
            ),
            OpenApiParameter(
                name="priority",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by priority",
                required=False,
            ),
            OpenApiParameter(
                name="type",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by message type",
                required=False,
            ),
        ],
        tags=["Notifications - Inbox"],
    ),
    retrieve=extend_schema(
        operation_id="get_message",
        summary="Get message",
        tags=["Notifications - Inbox"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="Soft-delete a message. It disappears from the inbox.",
        tags=["Notifications - Inbox"],
    ),
)
class MessageViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Inbox operations.

    Permissions:
    - All endpoints require authentication
    - Users only ever see their own messages
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        queryset = Message.objects.filter(receiver=self.request.user).select_related(
            "sender"
        )

        is_read = self.request.query_params.get("is_read")
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read.lower() == "true")

        priority = self.request.query_params.get("priority")
        if priority:
            queryset = queryset.filter(priority=priority)

        message_type = self.request.query_params.get("type")
        if message_type:
            queryset = queryset.filter(message_type=message_type)

        return queryset

    def destroy(self, request, pk=None):
        result = MessageService.delete_message(request.user, pk)
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="mark_message_read",
        summary="Mark message as read",
        description="Idempotent; already-read messages return success.",
        request=None,
        responses={
            200: MessageSerializer,
            404: OpenApiResponse(description="Message not found"),
        },
        tags=["Notifications - Inbox"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        result = MessageService.mark_as_read(request.user, pk)
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_404_NOT_FOUND)

        serializer = self.get_serializer(result.data)
        return Response(serializer.data)

    @extend_schema(
        operation_id="mark_all_messages_read",
        summary="Mark all messages as read",
        request=None,
        responses={200: MarkAllReadResponseSerializer},
        tags=["Notifications - Inbox"],
    )
    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request):
        result = MessageService.mark_all_as_read(request.user)
        serializer = MarkAllReadResponseSerializer({"updated": result.data})
        return Response(serializer.data)

    @extend_schema(
        operation_id="get_unread_message_count",
        summary="Get unread message count",
        responses={200: UnreadCountSerializer},
        tags=["Notifications - Inbox"],
    )
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        result = MessageService.unread_count(request.user)
        serializer = UnreadCountSerializer({"unread_count": result.data})
        return Response(serializer.data)


class PreferenceViewSet(viewsets.ViewSet):
    """
    Email category preferences of the caller.

    Locked categories are always listed as enabled and cannot be changed.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_email_preferences",
        summary="List email preferences",
        responses={200: PreferenceListSerializer},
        tags=["Notifications - Preferences"],
    )
    def list(self, request):
        result = PreferenceService.get_preferences(request.user)
        return Response({"preferences": result.data})

    @extend_schema(
        operation_id="update_email_preferences",
        summary="Update email preferences",
        description=(
            "Toggle optional email categories. Unknown or locked categories "
            "are ignored."
        ),
        request=PreferenceUpdateSerializer,
        responses={200: PreferenceListSerializer},
        tags=["Notifications - Preferences"],
    )
    def update(self, request):
        serializer = PreferenceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PreferenceService.update_preferences(
            request.user, serializer.validated_data["preferences"]
        )
        return Response({"preferences": result.data})


@extend_schema_view(
    list=extend_schema(
        operation_id="list_broadcasts",
        summary="List broadcasts",
        description="Paginated broadcast history, newest first.",
        tags=["Notifications - Broadcasts"],
    ),
)
class BroadcastViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Admin-only announcements and their history."""

    permission_classes = [IsAuthenticated, IsAdminUser]
    serializer_class = BroadcastHistorySerializer
    queryset = MessageBroadcast.objects.select_related("created_by").order_by(
        "-created_at", "-pk"
    )

    @extend_schema(
        operation_id="send_broadcast",
        summary="Send broadcast",
        description=(
            "Send an in-app message and announcement email to the listed "
            "users, or to every active user when target_users is omitted."
        ),
        request=BroadcastRequestSerializer,
        responses={
            201: BroadcastResponseSerializer,
            400: OpenApiResponse(description="Validation error"),
            404: OpenApiResponse(description="No valid target users"),
            500: OpenApiResponse(description="Sent, but the record was not saved"),
        },
        tags=["Notifications - Broadcasts"],
    )
    def create(self, request):
        serializer = BroadcastRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        validated = serializer.validated_data

        result = BroadcastService.send_system_message(
            sender=request.user,
            title=validated["title"],
            content=validated["content"],
            priority=validated["priority"],
            target_user_ids=validated.get("target_users"),
        )

        if not result.success:
            if result.error_code == "NO_TARGETS":
                return Response(
                    {"detail": result.error}, status=status.HTTP_404_NOT_FOUND
                )
            if result.error_code == "BROADCAST_NOT_RECORDED":
                return Response(
                    result.to_response(),
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR,
                )
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        return Response(
            BroadcastResponseSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="search_broadcast_recipients",
        summary="Search broadcast recipients",
        description=(
            "Active users matching email, username, name or id, for picking "
            "broadcast targets."
        ),
        parameters=[
            OpenApiParameter(
                name="q",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Search text; empty lists the first users",
                required=False,
            ),
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                description="Maximum results (1-20, default 20)",
                required=False,
            ),
        ],
        responses={200: BroadcastRecipientSerializer(many=True)},
        tags=["Notifications - Broadcasts"],
    )
    @action(detail=False, methods=["get"])
    def recipients(self, request):
        try:
            limit = int(request.query_params.get("limit", RECIPIENT_SEARCH_LIMIT))
        except ValueError:
            limit = RECIPIENT_SEARCH_LIMIT

        result = BroadcastService.search_recipients(
            request.query_params.get("q", ""), limit
        )
        serializer = BroadcastRecipientSerializer(result.data, many=True)
        return Response({"results": serializer.data})
