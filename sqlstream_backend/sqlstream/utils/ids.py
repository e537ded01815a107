import time
import uuid


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_thread_id() -> str:
    # UUID4 is fine for thread IDs
    return str(uuid.uuid4())


def new_execution_id() -> str:
    return f"sql-{_now_ms()}-{uuid.uuid4().hex[:9]}"


def new_interrupt_id() -> str:
    return f"interrupted-{_now_ms()}"
