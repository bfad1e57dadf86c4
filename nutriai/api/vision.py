"""REST API endpoint for meal photo analysis.

Accepts a multipart upload and returns the analysis envelope produced by
the VisionAnalysisOrchestrator. The HTTP status is the envelope status
(200 on success, including fallback; 400 or the classified status on
failure).
"""

from typing import Optional

import structlog
from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from nutriai.application.meal.vision_analysis_service import (
    VisionAnalysisOrchestrator,
    VisionAnalysisRequest,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/vision", tags=["vision"])


def get_orchestrator(http_request: Request) -> VisionAnalysisOrchestrator:
    """Orchestrator built once at startup by create_app."""
    return http_request.app.state.orchestrator  # type: ignore[no-any-return]


@router.post("/analyze")
async def analyze_meal_photo(
    http_request: Request,
    image: Optional[UploadFile] = File(None, description="Meal photo"),
    description: Optional[str] = Form(None, description="Optional meal description"),
    user_id: Optional[str] = Form(None, alias="userId", description="User ID"),
    meal_type: Optional[str] = Form(None, alias="mealType", description="Meal type"),
) -> JSONResponse:
    """Analyze a meal photo.

    Missing fields are not rejected by FastAPI: the orchestrator answers
    with a validation envelope so every response has the same shape.

    Example:
        ```bash
        curl -X POST http://localhost:8080/api/vision/analyze \\
          -F "image=@/path/to/lunch.jpg" \\
          -F "userId=user123" \\
          -F "mealType=lunch"
        ```

        Response:
        ```json
        {
          "success": true,
          "data": {"items": [...], "totalCalories": 417, ...},
          "meta": {"provider": "openai", "fallback": false}
        }
        ```
    """
    content: Optional[bytes] = None
    content_type: Optional[str] = None
    if image is not None:
        content = await image.read()
        content_type = image.content_type

    request = VisionAnalysisRequest(
        image=content,
        content_type=content_type,
        description=description,
        user_id=user_id,
        meal_type=meal_type,
    )
    response = await get_orchestrator(http_request).analyze(request)

    logger.debug("vision_analyze_response", status=response.status_code, success=response.success)
    return JSONResponse(status_code=response.status_code, content=response.content())
