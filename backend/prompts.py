# backend/prompts.py
"""
Các prompt template gửi cho model nano-banana edit.

[Image1] luôn là ảnh chính, [Image2] là ảnh nền.
"""
from .errors import ValidationError
from .model import GenerationRequest, LineArtStyle

LINE_ART_ASPECT_RATIO = "1:1"
MULTI_VIEW_ASPECT_RATIO = "16:9"
BACKGROUND_ASPECT_RATIO = "16:9"

LINE_ART_PROMPTS = {
    "technical": (
        "Convert the image in [Image1] into a technical line drawing. "
        "Use clean, precise lines with consistent thickness. "
        "Focus on structural details and proportions. "
        "Remove all colors and shading, keeping only black outlines on a white background. "
        "High-resolution, blueprint-style technical illustration."
    ),
    "concept": (
        "Convert the image in [Image1] into an artistic concept sketch. "
        "Use expressive, flowing lines with varied thickness. "
        "Capture the essence and character rather than precise details. "
        "Remove all colors, keeping only black ink-style outlines on white background. "
        "Artistic, hand-drawn concept art style."
    ),
}

MULTI_VIEW_PROMPT = (
    "Generate three standard orthographic views of the product/subject from [Image1]. "
    "Create three separate views arranged side by side: "
    "1. Front view - straight-on frontal perspective, "
    "2. Side view - 90-degree side profile, "
    "3. Top view - bird's eye view from directly above. "
    "Maintain consistent proportions, details, and appearance across all three views. "
    "Use clean white background, even studio lighting, and professional product photography style. "
    "High-resolution, technical drawing quality. "
    "Do not add any text labels or annotations on the image."
)

BACKGROUND_TEXT_PROMPT = (
    "Replace the background of [Image1] with {text_prompt}. "
    "Keep the main subject (product/person) completely unchanged, maintaining original: "
    "Size and proportions, Lighting and shadows, Colors and materials, Pose and orientation. "
    "Ensure the subject blends naturally with the new environment. "
    "Match lighting direction and color temperature. "
    "Photorealistic, high-resolution, seamless integration."
)

BACKGROUND_IMAGE_PROMPT = (
    "Take the main subject from [Image1] and place it into the background scene from [Image2]. "
    "Keep the subject from Image1 completely unchanged. "
    "Adjust lighting, shadows, and color temperature to match Image2 environment. "
    "Ensure the subject blends naturally with perspective and depth of field. "
    "Photorealistic, seamless integration, high-resolution."
)

BACKGROUND_HYBRID_PROMPT = (
    "Take the main subject from [Image1] and place it into the background from [Image2], "
    "but modify the background with these changes: {text_prompt}. "
    "Keep the subject from Image1 unchanged. "
    "Apply the described modifications to the Image2 background. "
    "Adjust lighting, shadows, and colors for natural integration. "
    "Photorealistic, high-resolution, seamless blending."
)


def build_line_art_prompt(style: LineArtStyle | None) -> str:
    if not style:
        raise ValidationError("Image URL and line art type are required")
    try:
        return LINE_ART_PROMPTS[style]
    except KeyError:
        raise ValidationError('Invalid line art type. Must be "technical" or "concept"') from None


def build_multi_view_prompt() -> str:
    return MULTI_VIEW_PROMPT


def build_background_prompt(req: GenerationRequest) -> str:
    """
    Validate request theo mode rồi điền vào template tương ứng.
    """
    req.validate()

    text_prompt = (req.text_prompt or "").strip()
    if req.mode == "text":
        return BACKGROUND_TEXT_PROMPT.format(text_prompt=text_prompt)
    if req.mode == "image":
        return BACKGROUND_IMAGE_PROMPT
    if req.mode == "hybrid":
        return BACKGROUND_HYBRID_PROMPT.format(text_prompt=text_prompt)
    raise ValidationError('Invalid mode. Must be "text", "image", or "hybrid"')
