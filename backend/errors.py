# backend/errors.py
"""
Các lỗi của backend.

Mọi lỗi user nhìn thấy đều là StudioError; tầng HTTP đổi nó thành
envelope {"error": {"code", "message"}} theo từng chức năng.
"""
from typing import Optional


class StudioError(Exception):
    """Lỗi gốc của studio"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(StudioError):
    """Thiếu input bắt buộc hoặc input sai định dạng"""
    pass


class ConfigMissing(StudioError):
    """Chưa cấu hình API key hoặc endpoint"""
    pass


class UploadFailed(StudioError):
    """Storage bucket từ chối upload"""
    def __init__(self, status_code: int, body: str):
        self.body = body
        super().__init__(f"Upload failed: {body}", status_code)


class RequestFailed(StudioError):
    """API phía sau trả về status khác 2xx (hoặc không gọi được)"""
    def __init__(self, status_code: Optional[int], body: str, service: str = "Duomi API"):
        self.body = body
        super().__init__(f"{service} failed: {body}", status_code)


class GenerationFailed(StudioError):
    """Task generate kết thúc ở trạng thái failed"""
    def __init__(self, message: str):
        self.reason = message
        super().__init__(f"Image generation failed: {message}")


class GenerationTimeout(StudioError):
    """Hết số lần poll mà task chưa xong"""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__("Generation timeout - please try again")


class NoImageReturned(StudioError):
    """Không tìm thấy URL ảnh trong response"""
    def __init__(self, message: str = "Unexpected API response format"):
        super().__init__(message)
