# backend/model.py
from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .errors import ValidationError

Mode = Literal["text", "image", "hybrid", "single"]

LineArtStyle = Literal["technical", "concept"]

TaskState = Literal["processing", "succeeded", "failed"]


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


@dataclass
class GenerationRequest:
    """
    1 thao tác của user: ảnh chính + những gì mode cần thêm.
    - text   -> text_prompt
    - image  -> secondary_image_url
    - hybrid -> text_prompt + secondary_image_url
    - single -> chỉ ảnh chính
    """
    source_image_url: Optional[str]
    mode: Optional[Mode]
    text_prompt: Optional[str] = None
    secondary_image_url: Optional[str] = None

    def validate(self) -> None:
        if not _present(self.source_image_url) or not _present(self.mode):
            raise ValidationError("Image URL and mode are required")

        if self.mode == "text":
            if not _present(self.text_prompt):
                raise ValidationError("Text prompt is required for text mode")
        elif self.mode == "image":
            if not _present(self.secondary_image_url):
                raise ValidationError("Background URL is required for image mode")
        elif self.mode == "hybrid":
            if not _present(self.secondary_image_url) or not _present(self.text_prompt):
                raise ValidationError(
                    "Both background URL and text prompt are required for hybrid mode"
                )
        elif self.mode != "single":
            raise ValidationError('Invalid mode. Must be "text", "image", or "hybrid"')

    def image_urls(self) -> List[str]:
        """[source] hoặc [source, secondary], đúng thứ tự prompt nhắc tới ([Image1], [Image2])."""
        if self.mode in ("image", "hybrid"):
            return [self.source_image_url, self.secondary_image_url]
        return [self.source_image_url]


@dataclass
class JobHandle:
    """Kết quả submit: có URL ảnh ngay, hoặc task id để poll."""
    result: Optional[str] = None
    task_id: Optional[str] = None

    @property
    def is_async(self) -> bool:
        return self.task_id is not None


@dataclass
class JobStatus:
    state: TaskState
    result: Optional[str] = None
    error_message: Optional[str] = None


# ----------------------------------------------------------
# Body HTTP. Field nào cũng optional để thiếu input thì
# trả về envelope lỗi của chức năng thay vì 422.
# ----------------------------------------------------------
class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UploadImageRequest(_Body):
    image_data: Optional[str] = Field(default=None, alias="imageData")
    file_name: Optional[str] = Field(default=None, alias="fileName")


class LineArtRequest(_Body):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    line_art_type: Optional[str] = Field(default=None, alias="lineArtType")


class MultiViewRequest(_Body):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class ReplaceBackgroundRequest(_Body):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    mode: Optional[str] = None
    text_prompt: Optional[str] = Field(default=None, alias="textPrompt")
    background_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("backgroundUrl", "backgroundImageUrl", "background_url"),
    )

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            source_image_url=self.image_url,
            mode=self.mode,
            text_prompt=self.text_prompt,
            secondary_image_url=self.background_url,
        )


class OptimizePromptRequest(_Body):
    user_prompt: Optional[str] = Field(default=None, alias="userPrompt")


class UploadResult(BaseModel):
    publicUrl: str
    storagePath: str


class OptimizedPrompt(BaseModel):
    optimizedPromptCn: str
    optimizedPromptEn: str
    optimizedPrompt: str


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorEnvelope(BaseModel):
    error: ErrorBody
