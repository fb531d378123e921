"""Read-only catalog of task types, sub-types and status labels for clients."""
from __future__ import annotations

from .models import OrderStatus, TaskStatus, TaskType

TASK_TYPES: dict[str, dict] = {
    TaskType.report.value: {
        "label": "Analysis report",
        "value": TaskType.report.value,
        "description": "Data analysis and research reports",
        "subTypes": [
            {"label": "Industry research", "value": "industry_research"},
            {"label": "Data analysis", "value": "data_analysis"},
            {"label": "Business plan", "value": "business_plan"},
            {"label": "Consulting report", "value": "consulting"},
            {"label": "Academic report", "value": "academic"},
        ],
    },
    TaskType.video.value: {
        "label": "Short video",
        "value": TaskType.video.value,
        "description": "Video production and editing",
        "subTypes": [
            {"label": "Channels content", "value": "wechat_video"},
            {"label": "Product promo", "value": "product_promo"},
            {"label": "Tutorial", "value": "tutorial"},
            {"label": "Short drama / creative", "value": "creative"},
            {"label": "Live stream editing", "value": "live_editing"},
            {"label": "Post-production", "value": "post_production"},
        ],
    },
    TaskType.labeling.value: {
        "label": "Data labeling",
        "value": TaskType.labeling.value,
        "description": "Training data annotation",
        "subTypes": [
            {"label": "Image labeling", "value": "image_labeling"},
            {"label": "Text labeling", "value": "text_labeling"},
            {"label": "Audio labeling", "value": "audio_labeling"},
            {"label": "Video labeling", "value": "video_labeling"},
            {"label": "3D point cloud", "value": "point_cloud"},
            {"label": "Data cleaning", "value": "data_cleaning"},
        ],
    },
}

TASK_STATUS_LABELS = {
    TaskStatus.pending.value: "Pending review",
    TaskStatus.approved.value: "Open",
    TaskStatus.in_progress.value: "In progress",
    TaskStatus.submitted.value: "Awaiting acceptance",
    TaskStatus.completed.value: "Completed",
    TaskStatus.rejected.value: "Rejected",
    TaskStatus.cancelled.value: "Cancelled",
}

ORDER_STATUS_LABELS = {
    OrderStatus.in_progress.value: "In progress",
    OrderStatus.submitted.value: "Awaiting acceptance",
    OrderStatus.completed.value: "Completed",
    OrderStatus.rejected.value: "Rejected",
}


def catalog() -> dict:
    return {
        "taskTypes": list(TASK_TYPES.values()),
        "taskStatus": [{"value": key, "label": label} for key, label in TASK_STATUS_LABELS.items()],
        "orderStatus": [{"value": key, "label": label} for key, label in ORDER_STATUS_LABELS.items()],
    }
