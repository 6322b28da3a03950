"""
Analysis Service

One-shot structured diagnostic analysis of a patient. The parsed result
is stored as a DIAGNOSIS analysis record together with the prompt that
produced it.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from aidoctor.config import ContextPolicy
from aidoctor.core.llm import (
    CompletionClient,
    CompletionOptions,
    build_analysis_request,
    parse_analysis_response,
)
from aidoctor.utils import PatientNotFoundError, get_logger

from .context_loader import load_patient_context
from .repository import PatientRepository

logger = get_logger(__name__)

ANALYSIS_TYPE = "DIAGNOSIS"


class AnalysisService:
    """Structured diagnostic analysis backed by the completion service."""

    def __init__(
        self,
        repository: PatientRepository,
        client: CompletionClient,
        policy: Optional[ContextPolicy] = None,
        options: Optional[CompletionOptions] = None,
    ):
        self.repository = repository
        self.client = client
        self.policy = policy or ContextPolicy()
        self.options = options or CompletionOptions()

    async def analyze_patient(self, patient_id: str) -> Dict[str, Any]:
        """
        Run and store a diagnostic analysis.

        Returns:
            The stored analysis record

        Raises:
            PatientNotFoundError: unknown patient
            CompletionServiceError: the completion service failed
            ResponseSchemaError: the answer was not the expected JSON
        """
        context, _ = await load_patient_context(self.repository, patient_id, history_limit=0)
        request = build_analysis_request(context, self.options, self.policy)

        response = await self.client.complete(request)
        result = parse_analysis_response(response.text)

        logger.info(
            f"Analysis for patient {patient_id}: risk {result.genel_risk_skoru}, "
            f"{len(result.olasi_tanilar)} diagnoses, urgent={result.acil_durum}"
        )

        return await self.repository.add_analysis(patient_id, {
            "analysis_type": ANALYSIS_TYPE,
            "input_data": {"prompt": request.messages[-1].content},
            "output_data": result.to_dict(),
            "references": {"model": response.model, "tokens": response.total_tokens},
            "created_at": datetime.now(timezone.utc).isoformat(),
        })

    async def list_analyses(self, patient_id: str) -> List[Dict[str, Any]]:
        """Stored analyses, newest first."""
        if await self.repository.get_patient(patient_id) is None:
            raise PatientNotFoundError(patient_id)
        return await self.repository.list_analyses(patient_id)
