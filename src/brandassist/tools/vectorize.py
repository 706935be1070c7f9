"""Image vectorization tools (Vectorizer.AI)."""

import logging
from functools import lru_cache
from typing import (
    Literal,
    Optional,
)

from pydantic import (
    Field,
    model_validator,
)

from brandassist.config import settings
from brandassist.core.errors import (
    ToolConfigurationError,
    ToolValidationError,
)
from brandassist.core.schema import ToolContext
from brandassist.integrations.vectorizer_ai import (
    VectorizeOptions,
    VectorizeResult,
    VectorizerClient,
)
from brandassist.tools import (
    EmptyInput,
    ToolInput,
    register_tool,
)

logger = logging.getLogger(__name__)

INLINE_SVG_LIMIT = 10_000
LOW_CREDIT_THRESHOLD = 10

FORMAT_NAMES = {
    "image/svg+xml": "SVG vector graphic",
    "application/pdf": "PDF document",
    "image/png": "PNG image",
    "application/postscript": "EPS file",
    "application/dxf": "DXF file",
    "image/vnd.dxf": "DXF file",
}

NO_IMAGE_MESSAGE = """\
No image found. I couldn't find any uploaded image in the recent conversation. Please either:
1. Upload an image file (JPG, PNG, GIF, BMP, TIFF) and ask to vectorize it, or
2. Provide a direct image URL.
Make sure the image is uploaded as a file attachment, not pasted inline."""


@lru_cache(maxsize=1)
def get_vectorizer_client() -> VectorizerClient:
    return VectorizerClient.from_settings(settings)


class VectorizeOptionsInput(ToolInput):
    mode: Literal["production", "preview", "test", "test_preview"] = Field(
        "preview",
        description="'preview' or 'test' for trials (watermarked), 'production' for final results",
    )
    output_format: Literal["svg", "png", "pdf", "eps", "dxf"] = Field(
        "svg", description="Output file format"
    )
    max_colors: Optional[int] = Field(
        None, ge=0, le=256, description="Maximum number of colors (0 = unlimited)"
    )
    retention_days: int = Field(
        1, ge=0, le=30, description="Days to keep the result for downloading other formats"
    )


class VectorizeInput(ToolInput):
    image_url: Optional[str] = Field(None, description="Public URL of the image to vectorize")
    file_id: Optional[str] = Field(None, description="Slack file ID of an uploaded image")
    image_base64: Optional[str] = Field(None, description="Base64-encoded image data")
    options: VectorizeOptionsInput = Field(default_factory=VectorizeOptionsInput)

    @model_validator(mode="after")
    def _one_source(self) -> "VectorizeInput":
        given = [s for s in (self.image_url, self.file_id, self.image_base64) if s]
        if len(given) > 1:
            raise ValueError("give at most one of imageUrl, fileId or imageBase64")
        return self


def describe_result(result: VectorizeResult, source: str, options: VectorizeOptionsInput) -> str:
    fmt = FORMAT_NAMES.get(result.content_type, "vectorized image")
    if options.mode == "preview":
        mode_info = " (preview mode, includes watermark)"
    elif options.mode in ("test", "test_preview"):
        mode_info = " (test mode, includes watermark, no credits charged)"
    else:
        mode_info = ""

    lines = [
        f"**Image Vectorization Complete**{mode_info}",
        f"**Input:** {source}",
        f"**Output:** {fmt[0].upper()}{fmt[1:]}",
    ]
    if options.max_colors:
        lines.append(f"**Max colors:** {options.max_colors}")
    if result.credits_charged > 0:
        lines.append(f"**Credits charged:** {result.credits_charged:g}")
    elif result.credits_calculated:
        lines.append(f"**Credits that would be charged:** {result.credits_calculated:g} (test mode)")
    if result.image_token:
        lines.append(
            f"**Image token:** {result.image_token} (kept {options.retention_days} day(s) for "
            "additional formats at reduced cost)"
        )

    if result.content_type == "image/svg+xml" and len(result.data) < INLINE_SVG_LIMIT:
        lines.append(f"```svg\n{result.data.decode('utf-8', errors='replace')}\n```")
    else:
        lines.append(f"**File generated:** {fmt} ({len(result.data) / 1024:.1f} KB)")

    if options.mode == "preview":
        lines.append('_Use mode "production" for final results without watermark._')
    return "\n".join(lines)


@register_tool(
    "vectorize_image",
    description="Convert a bitmap image (logo, artwork) into a vector graphic such as SVG. Call it "
    "whenever the user asks to vectorize, convert to SVG or make an image scalable (also for "
    "misspellings like 'vectorise'). Without an explicit source, the most recent image uploaded "
    "in the conversation is used.",
    input_model=VectorizeInput,
)
def vectorize_image(params: VectorizeInput, context: ToolContext) -> str:
    client = get_vectorizer_client()
    options = VectorizeOptions(**params.options.model_dump())
    context.report_status("is looking for images to vectorize...")

    if params.image_url:
        source = f"image from {params.image_url}"
        context.report_status("is vectorizing your image...")
        result = client.vectorize_url(params.image_url, options)
    elif params.image_base64:
        source = "inline image data"
        context.report_status("is vectorizing your image...")
        result = client.vectorize_base64(params.image_base64, options)
    else:
        if context.workspace is None:
            raise ToolConfigurationError(
                "Uploaded files are not accessible in this session.",
                "Provide an image URL or base64 image data instead.",
            )
        file_id = params.file_id
        name = file_id
        if not file_id:
            if not context.channel:
                raise ToolValidationError(NO_IMAGE_MESSAGE)
            context.report_status("is searching for uploaded images in the conversation...")
            found = context.workspace.recent_image_file(context.channel, context.thread_ts)
            if found is None:
                return NO_IMAGE_MESSAGE
            file_id, name = found.id, found.name

        content, filename = context.workspace.download_file(file_id)
        source = f"uploaded image ({name or filename})"
        context.report_status("is vectorizing your image...")
        result = client.vectorize_bytes(content, filename, options)

    logger.info(
        "Vectorized %s: %s, %d bytes, %.2f credits",
        source,
        result.content_type,
        len(result.data),
        result.credits_charged,
    )
    return describe_result(result, source, params.options)


@register_tool(
    "vectorizer_account_status",
    description="Check the Vectorizer.AI subscription plan and remaining credits.",
    input_model=EmptyInput,
)
def vectorizer_account_status(params: EmptyInput, context: ToolContext) -> str:
    client = get_vectorizer_client()
    context.report_status("is checking vectorizer account status...")

    account = client.account_status()
    plan = "No active plan" if account.subscription_plan == "none" else account.subscription_plan
    lines = [
        "**Vectorizer.AI Account Status**",
        f"**Subscription:** {plan}",
        f"**Status:** {account.subscription_state}",
        f"**Credits remaining:** {account.credits:,g}",
    ]
    if account.credits == 0 and account.subscription_plan == "none":
        lines.append("Warning: no active subscription. Test mode still works for development.")
    elif account.credits < LOW_CREDIT_THRESHOLD:
        lines.append("Warning: low credits remaining. Consider topping up the account.")
    else:
        lines.append("Account is active and ready for image vectorization.")
    return "\n".join(lines)
