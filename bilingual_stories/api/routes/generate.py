"""Story generation endpoints."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from bilingual_stories.core.errors import PipelineError, ValidationError

from ..dependencies import Service
from ..models.requests import GenerateStoryRequest
from ..models.responses import (
    EndpointInfoResponse,
    ErrorResponse,
    GenerateStoryResponse,
    StoryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_PREFIX = "Failed to generate story"


@router.post(
    "",
    response_model=GenerateStoryResponse,
    summary="Generate a bilingual story",
    description=(
        "Generate an English/Chinese story for the given age group and Chinese level. "
        "With includeImages, every page is illustrated using subjectReference as the character."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid request fields"},
        500: {"model": ErrorResponse, "description": "Story generation failed"},
    },
)
async def generate_story(request: GenerateStoryRequest, service: Service):
    """Generate a story. Returns the complete story or an error, never both."""
    try:
        story = await service.generate_story(request.to_generation_request())
    except ValidationError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})
    except PipelineError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"{ERROR_PREFIX}: {e.message}"},
        )
    except Exception as e:
        logger.exception("Unexpected error during story generation")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"{ERROR_PREFIX}: {str(e) or type(e).__name__}"},
        )

    message = (
        "Story generated successfully with custom images"
        if request.include_images
        else "Story generated successfully"
    )
    return GenerateStoryResponse(story=StoryResponse.from_story(story), message=message)


@router.get(
    "",
    response_model=EndpointInfoResponse,
    summary="Describe the generate endpoint",
)
async def describe_generate():
    """Static description of accepted fields (diagnostic)."""
    return EndpointInfoResponse(
        message="Story generation API is running",
        endpoint="POST /generate",
        required_fields=["prompt", "ageGroup", "chineseLevel"],
        optional_fields=["includeImages", "subjectReference", "storyId"],
    )
