import json
import logging
import re
from typing import Optional

import aiohttp

from .errors import ConfigMissing, RequestFailed, ValidationError
from .model import OptimizedPrompt

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """
You are a professional AI image generation prompt engineer specializing in Nano Banana (Gemini 2.5 Flash Image) model.

Your task is to optimize user prompts for better image generation results. You MUST provide TWO versions:

1. Chinese version (optimized_prompt_cn): A detailed Chinese description for users to understand
2. English version (optimized_prompt_en): A professional English prompt for AI image generation

Follow these guidelines for the English version:

1. Be Hyper-Specific: Add precise details about:
   - Subject appearance (colors, materials, textures)
   - Lighting (direction, intensity, color temperature)
   - Composition (camera angle, framing)
   - Style (photorealistic, artistic, technical)
   - Environment (background, setting, atmosphere)

2. Use Clear Structure:
   - Start with action verb (Create, Generate, Convert)
   - Describe main subject
   - Add environmental context
   - Specify technical details (resolution, style, lighting)

3. Include Technical Parameters:
   - Resolution quality (high-resolution, 8K, photorealistic)
   - Lighting setup (studio lighting, natural light, golden hour)
   - Camera details (wide-angle, macro, 45-degree angle)
   - Style modifiers (seamless integration, natural blending)

4. Avoid Negative Prompts: Instead of "no cars", say "empty street with no traffic signs"

5. Maintain Consistency: When editing images, explicitly state what to keep unchanged

Output format (JSON):
{
  "optimized_prompt_cn": "详细的中文描述...",
  "optimized_prompt_en": "Professional English prompt for AI..."
}

Return ONLY valid JSON, no additional text.
""".strip()


class PromptOptimizer:
    """
    Dùng DeepSeek chat completions để viết lại prompt của user
    thành 2 bản: tiếng Trung (cho user đọc) và tiếng Anh (cho model ảnh).
    """

    def __init__(
        self,
        host: str = "https://api.deepseek.com",
        model: str = "deepseek-chat",
        api_key: Optional[str] = None,
        request_timeout: float = 60.0,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.request_timeout = request_timeout

    async def optimize(self, user_prompt: Optional[str]) -> OptimizedPrompt:
        if not user_prompt or not user_prompt.strip():
            raise ValidationError("User prompt is required")
        if not self.api_key:
            raise ConfigMissing("DEEPSEEK_API_KEY not configured")

        content = await self._chat(user_prompt)
        return self.parse_content(content, user_prompt)

    async def _chat(self, user_prompt: str) -> str:
        url = f"{self.host}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
        }

        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, headers=headers, json=payload) as resp:
                    if resp.status != 200:
                        body_text = await resp.text()
                        logger.error("HTTP %s from %s: %s", resp.status, url, body_text[:300])
                        raise RequestFailed(resp.status, body_text, service="DeepSeek API")
                    try:
                        body = await resp.json(content_type=None)
                    except ValueError:
                        body_text = await resp.text()
                        logger.error("Non-JSON body from %s: %s", url, body_text[:300])
                        raise RequestFailed(resp.status, body_text[:300], service="DeepSeek API") from None
        except aiohttp.ClientError as e:
            logger.error("Error calling DeepSeek: %s", e)
            raise RequestFailed(None, str(e), service="DeepSeek API") from e

        try:
            return body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            raise RequestFailed(resp.status, json.dumps(body)[:300], service="DeepSeek API") from None

    @staticmethod
    def parse_content(content: str, user_prompt: str) -> OptimizedPrompt:
        """
        Parse JSON trong text trả về; nếu model không trả JSON hợp lệ
        thì dùng nguyên text làm bản tiếng Anh, bản tiếng Trung giữ prompt gốc.
        """
        parsed = None
        m = re.search(r"\{[\s\S]*\}", content or "")
        if m:
            try:
                parsed = json.loads(m.group())
            except ValueError:
                logger.warning("Optimizer output is not valid JSON, raw=%s", content[:200])

        if isinstance(parsed, dict):
            cn = parsed.get("optimized_prompt_cn") or parsed.get("optimizedPromptCn") or ""
            en = parsed.get("optimized_prompt_en") or parsed.get("optimizedPromptEn") or ""
        else:
            cn, en = user_prompt, content

        return OptimizedPrompt(optimizedPromptCn=cn, optimizedPromptEn=en, optimizedPrompt=en)
