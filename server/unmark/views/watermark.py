from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from unmark.const import HISTORY_LIMIT
from unmark.models import WatermarkTask
from unmark.serializers import QueueStatusSerializer, WatermarkTaskSerializer
from unmark.services.status import queue_status_for_user
from unmark.utils import format_error


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def queue_status(request):
    """
    Get queue counts and the user's position in the queue.
    """
    serializer = QueueStatusSerializer(queue_status_for_user(request.user))
    return Response(serializer.data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def task_status(request, task_id):
    """
    Get one watermark task of the current user.
    """
    try:
        task = WatermarkTask.objects.get(id=task_id, user=request.user)
    except WatermarkTask.DoesNotExist:
        return Response(
            format_error(code="not_found", message="Task not found"),
            status=status.HTTP_404_NOT_FOUND,
        )

    return Response(WatermarkTaskSerializer(task).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def task_history(request):
    """
    List the current user's most recent watermark tasks, newest first.
    """
    tasks = WatermarkTask.objects.filter(user=request.user).order_by('-created_at')[:HISTORY_LIMIT]
    serializer = WatermarkTaskSerializer(tasks, many=True)
    return Response({"tasks": serializer.data})
