# src/supernova/profiles.py
"""
Model Profile Registry.

Maps the user-facing model identifiers to a concrete backend model, the
system instruction sent with every request, and whether the profile is
reserved for premium (entitled) users. The table is static configuration;
lookups never fail, unknown identifiers resolve to DEFAULT_PROFILE.
"""

import logging
from enum import Enum
from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ModelId(str, Enum):
    """Closed set of model choices offered to the user."""
    GEMINI_3_PRO = "gemini-3-pro"
    GEMINI_2_5_PRO = "gemini-2.5-pro"
    GPT_3 = "gpt-3"
    CLAUDE_3_OPUS = "claude-3-opus"
    MISTRAL_LARGE = "mistral-large"


class ModelProfile(BaseModel):
    """Configuration bundle selected by a ModelId."""
    model_config = ConfigDict(frozen=True)

    model_id: str
    label: str
    backend_model: str
    system_instruction: str
    requires_entitlement: bool


ULTRA_INSTRUCTION = """Você é a Supernova (Edição Ultra), uma IA de elite baseada no modelo Gemini 3 Pro.

Diretrizes:
1.  **Excelência Técnica:** Forneça respostas profundas, detalhadas e tecnicamente precisas.
2.  **Raciocínio:** Utilize raciocínio passo-a-passo para problemas complexos.
3.  **Persona:** Sofisticada, moderna e proativa.
4.  **Formatação:** Use Markdown rico (tabelas, código, negrito).
5.  **Identidade:** Se perguntada, confirme que você é a versão Ultra rodando no Gemini 3 Pro."""

FAST_INSTRUCTION = """Você é a Supernova (Edição Fast), focada em velocidade e eficiência, baseada no modelo Gemini 2.5 Flash.

Diretrizes:
1.  **Velocidade:** Seja direta e concisa. Evite divagações desnecessárias.
2.  **Eficiência:** Vá direto ao ponto.
3.  **Identidade:** Você é a versão otimizada para performance."""

LEGACY_INSTRUCTION = """Você está operando em "Modo de Compatibilidade GPT-3 Legacy".

Diretrizes:
1.  **Simulação:** Aja como um assistente de IA genérico e prestativo de 2021.
2.  **Estilo:** Seja simples, robótico mas educado, e evite excesso de personalidade "cósmica".
3.  **Restrições:** Mantenha respostas mais curtas e padronizadas.
4.  **Nota:** Se perguntada, diga que está rodando em modo de compatibilidade legado."""

OPUS_INSTRUCTION = """Você está operando no modo "Claude 3 Opus (Simulado)".

Diretrizes:
1.  **Estilo de Escrita:** Adote um tom altamente articulado, nuançado e quase literário. Evite jargões robóticos comuns de IA.
2.  **Segurança e Ética:** Priorize respostas extremamente seguras, inofensivas e honestas, características marcantes do modelo simulado.
3.  **Profundidade:** Forneça explicações abrangentes e detalhadas, explorando múltiplas facetas de uma questão.
4.  **Nota:** Se perguntada, esclareça que você é a Supernova simulando o estilo e capacidades do Claude 3 Opus."""

MISTRAL_INSTRUCTION = """Você está operando no modo "Mistral Large (Simulado)".

Diretrizes:
1.  **Eficiência Europeia:** Seja extremamente direto, lógico e sem "fluff" (conteúdo vazio).
2.  **Foco em Código:** Demonstre alta proficiência técnica e concisão em exemplos de código.
3.  **Transparência:** Adote um tom mais técnico e "open-weight", menos conversacional e mais funcional.
4.  **Nota:** Se perguntada, esclareça que você é a Supernova simulando o estilo do Mistral Large."""

# --- Mapping from model identifier to profile ---
PROFILE_MAP: Dict[ModelId, ModelProfile] = {
    ModelId.GEMINI_3_PRO: ModelProfile(
        model_id=ModelId.GEMINI_3_PRO.value,
        label="Supernova Ultra",
        backend_model="gemini-3-pro-preview",
        system_instruction=ULTRA_INSTRUCTION,
        requires_entitlement=True,
    ),
    # "2.5 Pro" is served by 2.5 Flash for latency
    ModelId.GEMINI_2_5_PRO: ModelProfile(
        model_id=ModelId.GEMINI_2_5_PRO.value,
        label="Supernova Fast",
        backend_model="gemini-2.5-flash",
        system_instruction=FAST_INSTRUCTION,
        requires_entitlement=False,
    ),
    ModelId.GPT_3: ModelProfile(
        model_id=ModelId.GPT_3.value,
        label="GPT-3 Legacy",
        backend_model="gemini-2.5-flash",
        system_instruction=LEGACY_INSTRUCTION,
        requires_entitlement=False,
    ),
    ModelId.CLAUDE_3_OPUS: ModelProfile(
        model_id=ModelId.CLAUDE_3_OPUS.value,
        label="Claude 3 Opus (Sim)",
        backend_model="gemini-3-pro-preview",
        system_instruction=OPUS_INSTRUCTION,
        requires_entitlement=True,
    ),
    ModelId.MISTRAL_LARGE: ModelProfile(
        model_id=ModelId.MISTRAL_LARGE.value,
        label="Mistral Large (Sim)",
        backend_model="gemini-3-pro-preview",
        system_instruction=MISTRAL_INSTRUCTION,
        requires_entitlement=True,
    ),
}
# --- End Mapping ---

DEFAULT_PROFILE = ModelProfile(
    model_id="default",
    label="Supernova",
    backend_model="gemini-3-pro-preview",
    system_instruction="",
    requires_entitlement=True,
)

PREMIUM_MODELS = frozenset(model_id for model_id, profile in PROFILE_MAP.items() if profile.requires_entitlement)


def _as_model_id(model_id: Union[ModelId, str, None]):
    if isinstance(model_id, ModelId):
        return model_id
    try:
        return ModelId(model_id)
    except ValueError:
        return None


def resolve(model_id: Union[ModelId, str, None]) -> ModelProfile:
    """
    Looks up the profile for a model identifier.

    Args:
        model_id: A ModelId member or its string value. Stale or unknown values
                  (e.g. from an old persisted selection) are tolerated.

    Returns:
        The matching ModelProfile, or DEFAULT_PROFILE for unknown identifiers.
    """
    key = _as_model_id(model_id)
    if key is None:
        logger.warning(f"Unknown model identifier '{model_id}'. Falling back to default profile '{DEFAULT_PROFILE.backend_model}'.")
        return DEFAULT_PROFILE
    return PROFILE_MAP[key]


def is_available(model_id: Union[ModelId, str], is_premium: bool) -> bool:
    """Whether a user with the given entitlement may select this model."""
    return is_premium or not resolve(model_id).requires_entitlement


def list_profiles() -> List[ModelProfile]:
    """All known profiles in menu order."""
    return list(PROFILE_MAP.values())
