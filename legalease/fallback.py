"""Deterministic keyword-driven analysis used when the model cannot be reached."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from legalease.normalizer import excerpt
from legalease.prompts import DEFAULT_DISCLAIMER, is_hindi
from legalease.schema_models import AnalysisResult, Clause

logger = logging.getLogger(__name__)

CHALLAN_KEYWORDS = (
    "challan",
    "traffic",
    "violation",
    "vehicle inspection",
    "infringement report",
    "motor vehicles act",
)
TAMIL_NADU_KEYWORDS = ("tamilnadu", "tamil nadu", "chennai traffic police")

CHALLAN_QUESTIONS = [
    "What is the violation I'm being charged for?",
    "What is the fine amount and payment deadline?",
    "What happens if I don't pay the fine on time?",
    "Can I contest this challan?",
    "What are my legal rights in this case?",
    "How does this affect my driving record?",
    "Is this challan valid if some fields are blank?",
    "What should I do if the challan has incomplete information?",
]
GENERIC_QUESTIONS = [
    "What are the main terms and conditions?",
    "Are there any clauses I should be concerned about?",
    "How does this apply under Indian law?",
    "What should I verify before signing?",
]
CHALLAN_DISCLAIMER = (
    "This is a legal notice that requires immediate attention. Please consult with a traffic "
    "lawyer or legal expert for specific advice regarding your case. Non-payment may result in "
    "additional penalties or court proceedings."
)

HINDI_DOCUMENT_TYPES = {
    "Traffic Challan": "ट्रैफिक चालान",
    "Rental Agreement": "किराया समझौता",
    "Employment Contract": "रोज़गार अनुबंध",
    "Service Agreement": "सेवा समझौता",
    "Legal Document": "कानूनी दस्तावेज़",
}


@dataclass(frozen=True)
class DocumentSignals:
    file_name: str
    text: str

    def mentions(self, keywords: tuple[str, ...]) -> bool:
        return any(keyword in self.file_name or keyword in self.text for keyword in keywords)

    def name_mentions(self, keyword: str) -> bool:
        return keyword in self.file_name


@dataclass(frozen=True)
class Classification:
    document_type: str
    is_challan: bool = False
    region: str | None = None


Rule = tuple[Callable[[DocumentSignals], bool], str]

# Evaluated in order; the first matching rule names the document type.
DOCUMENT_TYPE_RULES: list[Rule] = [
    (lambda signals: signals.mentions(CHALLAN_KEYWORDS), "Traffic Challan"),
    (lambda signals: signals.name_mentions("rental"), "Rental Agreement"),
    (lambda signals: signals.name_mentions("employment"), "Employment Contract"),
    (lambda signals: signals.name_mentions("service"), "Service Agreement"),
]
REGION_RULES: list[Rule] = [
    (lambda signals: any(keyword in signals.text for keyword in TAMIL_NADU_KEYWORDS), "Tamil Nadu"),
]


def classify_document(text: str, file_name: str) -> Classification:
    signals = DocumentSignals(file_name=(file_name or "").lower(), text=(text or "").lower())

    document_type = "Legal Document"
    for predicate, label in DOCUMENT_TYPE_RULES:
        if predicate(signals):
            document_type = label
            break

    if document_type != "Traffic Challan":
        return Classification(document_type=document_type)

    region = next((label for predicate, label in REGION_RULES if predicate(signals)), None)
    return Classification(document_type=document_type, is_challan=True, region=region)


def _challan_analysis(text: str, region: str | None, language: str | None) -> AnalysisResult:
    issuer_en = f" issued by {region} Traffic Police" if region else ""
    issuer_hi = " जो तमिलनाडु ट्रैफिक पुलिस द्वारा जारी किया गया है" if region == "Tamil Nadu" else ""
    region_marker = f"{region.lower().replace(' ', '_')}_traffic" if region else "state_traffic_police"

    summary_en = (
        f"This is a traffic challan (violation notice) document{issuer_en}. The document appears to be "
        "a legal notice issued by traffic authorities for a motor vehicle violation under the Motor "
        "Vehicles Act, 1988. Please review the violation details, fine amount, and legal implications carefully."
    )
    if is_hindi(language):
        summary_local = (
            f"यह एक ट्रैफिक चालान (उल्लंघन नोटिस) दस्तावेज़ है{issuer_hi}। यह दस्तावेज़ मोटर वाहन उल्लंघन के "
            "लिए ट्रैफिक अधिकारियों द्वारा जारी किया गया कानूनी नोटिस प्रतीत होता है। कृपया उल्लंघन विवरण, "
            "जुर्माना राशि और कानूनी प्रभावों की सावधानीपूर्वक समीक्षा करें।"
        )
    else:
        summary_local = (
            f"This is a traffic challan (violation notice) document{issuer_en}. "
            "Please review the violation details carefully."
        )

    return AnalysisResult(
        summary_en=summary_en,
        summary_local=summary_local,
        clauses=[
            Clause(
                title="Traffic Violation Notice",
                source_excerpt=excerpt(text, 300) or "No excerpt available",
                explanation_en=(
                    "This is a legal notice for a traffic violation under the Motor Vehicles Act, 1988. "
                    "It contains details about the offense, fine amount, and legal consequences. "
                    f"The document appears to be issued by {region + ' ' if region else ''}traffic police authorities."
                ),
                risk_level="HIGH",
                risk_reasons=[
                    "Legal notice requires immediate attention",
                    "Fine payment deadline",
                    "Potential court proceedings",
                    "Vehicle registration may be affected",
                ],
                india_markers=["motor_vehicles_act", "traffic_law", "penalty_notice", region_marker],
            ),
            Clause(
                title="Payment and Compliance",
                source_excerpt="Payment and compliance requirements",
                explanation_en=(
                    "The challan requires payment of the specified fine within the given timeframe to avoid "
                    "further legal action. Non-payment may result in additional penalties or court proceedings."
                ),
                risk_level="MEDIUM",
                risk_reasons=["Time-sensitive payment", "Additional penalties for delay", "Vehicle impoundment risk"],
                india_markers=["fine_payment", "compliance_deadline", "motor_vehicles_act"],
            ),
            Clause(
                title="Document Completeness",
                source_excerpt=excerpt(text, 200) or "No excerpt available",
                explanation_en=(
                    "Review the document for completeness. Ensure all required fields are filled including "
                    "challan number, vehicle details, offense description, and fine amount."
                ),
                risk_level="MEDIUM",
                risk_reasons=[
                    "Incomplete information may affect validity",
                    "Missing details could delay processing",
                ],
                india_markers=["document_validation", "legal_procedure"],
            ),
        ],
        recommended_questions=list(CHALLAN_QUESTIONS),
        disclaimer=CHALLAN_DISCLAIMER,
    )


def _generic_analysis(text: str, document_type: str, language: str | None) -> AnalysisResult:
    label = document_type.lower()
    if is_hindi(language):
        summary_local = (
            f"यह एक {HINDI_DOCUMENT_TYPES.get(document_type, label)} प्रतीत होता है। "
            "दस्तावेज़ सफलतापूर्वक अपलोड हो गया है और विश्लेषण के लिए तैयार है।"
        )
    else:
        summary_local = f"This appears to be a {label}. The document has been uploaded successfully."

    return AnalysisResult(
        summary_en=(
            f"This appears to be a {label}. The document has been uploaded successfully and is ready for "
            "analysis. Please review the content carefully and consult with a legal professional for specific advice."
        ),
        summary_local=summary_local,
        clauses=[
            Clause(
                title="Document Uploaded Successfully",
                source_excerpt=excerpt(text, 200) or "No excerpt available",
                explanation_en=(
                    "Your document has been uploaded and is ready for detailed analysis. "
                    "Please ensure all terms are clear before proceeding."
                ),
                risk_level="MEDIUM",
                risk_reasons=["Document requires review", "Terms need verification"],
                india_markers=["general_legal", "document_review"],
            )
        ],
        recommended_questions=list(GENERIC_QUESTIONS),
        disclaimer=DEFAULT_DISCLAIMER,
    )


def fallback_analysis(text: str, file_name: str = "document", language: str | None = "en") -> AnalysisResult:
    classification = classify_document(text, file_name)
    logger.info("Fallback analysis classified document as %s", classification.document_type)
    if classification.is_challan:
        return _challan_analysis(text or "", classification.region, language)
    return _generic_analysis(text or "", classification.document_type, language)
