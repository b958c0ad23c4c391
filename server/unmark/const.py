# Flat refund per failed task, independent of the amount charged at submission.
WATERMARK_REFUND_AMOUNT = 50

REFUND_DESCRIPTION = "去水印失败退款"

STUCK_TASK_MESSAGE = "任务超时，正在重试..."

POLL_TIMEOUT_MESSAGE = "轮询超时：结果未就绪"

UNKNOWN_ERROR_MESSAGE = "未知错误"

HISTORY_LIMIT = 50

# Negative vendor states are permanent failures.
REMOTE_STATE_MESSAGES = {
    -7: "无效文件（文件损坏或格式不对）",
    -5: "文件超出大小限制（最大50MB）",
    -3: "下载失败（检查URL是否可访问）",
    -2: "上传失败",
    -1: "处理失败",
}


def remote_state_message(state):
    return REMOTE_STATE_MESSAGES.get(state, f"任务状态异常: {state}")
