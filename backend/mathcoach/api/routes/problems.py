"""Problems — photo upload analysis that opens a tutoring session."""

from fastapi import APIRouter, Depends

from mathcoach.api.dependencies import get_problem_intake, get_request_context
from mathcoach.core.request_context import RequestContext
from mathcoach.schemas.problem import ProblemAnalyzeRequest, ProblemAnalyzeResponse
from mathcoach.services.problem_intake import ProblemIntake

router = APIRouter(prefix="/api/v1/problems", tags=["problems"])


@router.post("/analyze", response_model=ProblemAnalyzeResponse)
async def analyze_problem(
    body: ProblemAnalyzeRequest,
    ctx: RequestContext = Depends(get_request_context),
    intake: ProblemIntake = Depends(get_problem_intake),
):
    """Analyze a photo. needs_retake=True means no session was created."""
    result = await intake.analyze_upload(
        ctx, body.session_id, body.image_base64, body.media_type,
    )
    analysis = result.analysis.model_dump(exclude={"needs_retake"})
    if result.session is None:
        return ProblemAnalyzeResponse(
            needs_retake=True,
            problem_text=result.analysis.problem_text,
            analysis=analysis,
        )
    return ProblemAnalyzeResponse(
        needs_retake=False,
        session_id=result.session.session_id,
        problem_text=result.session.problem_text,
        analysis=result.session.analysis or analysis,
        first_question=result.first_question,
        current_round=result.session.current_round,
        total_rounds=result.session.total_rounds,
    )
