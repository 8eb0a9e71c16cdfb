"""
Prompt templates for sales call analysis
"""

import json
from typing import Any, Dict, List, Optional

ANALYSIS_SYSTEM_PROMPT = (
    "Você é um analista especializado em chamadas de vendas. Sempre responda APENAS com "
    "JSON válido, sem texto adicional, markdown ou explicações."
)

ANALYSIS_USER_TEMPLATE = """Você é um especialista em análise de chamadas de vendas. Analise a seguinte transcrição de uma ligação de vendas e forneça uma análise detalhada em formato JSON.

Transcrição:
"{transcription}"

Duração aproximada: {duration} segundos

Forneça uma análise completa com os seguintes campos (responda APENAS em JSON válido, sem markdown ou texto adicional):

{{
  "sentiment": número de 0 a 1 (0 = muito negativo, 1 = muito positivo),
  "engagement": número de 0 a 1 (0 = baixo engajamento, 1 = alto engajamento),
  "keywords": array de strings com as 5-8 palavras-chave mais importantes mencionadas,
  "summary": string com resumo da ligação em 2-3 frases,
  "positivePoints": array de strings com pontos positivos da ligação,
  "improvementAreas": array de strings com áreas que precisam melhorar,
  "sentimentAnalysis": {{
    "overall": "positive" | "neutral" | "negative",
    "customerSentiment": número de 0 a 1,
    "salespersonSentiment": número de 0 a 1
  }},
  "engagementMetrics": {{
    "conversationFlow": número de 0 a 1,
    "questionQuality": número de 0 a 1,
    "listeningSkills": número de 0 a 1
  }},
  "salesIndicators": {{
    "objections": array de strings com objeções mencionadas,
    "buyingSignals": array de strings com sinais de compra,
    "nextSteps": string com próximos passos sugeridos
  }},
  "recommendations": array de 3-5 strings com recomendações específicas para melhorar
}}"""


def build_analysis_prompt(transcription: str, duration: Optional[float] = None) -> str:
    duration_text = "desconhecida" if not duration else f"{duration:g}"
    return ANALYSIS_USER_TEMPLATE.format(transcription=transcription, duration=duration_text)


OBJECTIONS_SYSTEM_PROMPT = "You are an expert sales objection handler. Always respond with valid JSON only."

OBJECTIONS_USER_TEMPLATE = """Analyze this sales call transcription and identify objections and competitor mentions. Return ONLY valid JSON:

{{
  "objections": [
    {{
      "type": "price" | "timeline" | "product" | "competitor" | "authority" | "other",
      "text": "exact quote of the objection",
      "severity": "low" | "medium" | "high",
      "suggestedResponse": "suggested response to handle this objection"
    }}
  ],
  "competitorMentions": [
    {{
      "competitor": "competitor name",
      "context": "what was said about them",
      "suggestedCounter": "suggested counter-argument"
    }}
  ],
  "overallObjectionLevel": "low" | "medium" | "high"
}}

Transcription: "{transcription}\""""

SENTIMENT_BY_PERSON_SYSTEM_PROMPT = "You are an expert sales call analyst. Always respond with valid JSON only."

SENTIMENT_BY_PERSON_USER_TEMPLATE = """Analyze this sales call transcription and separate sentiment analysis for the salesperson vs the customer. Identify tension moments and suggest when to change approach. Return ONLY valid JSON:

{{
  "salesperson": {{
    "sentiment": 0.0-1.0,
    "engagement": 0.0-1.0,
    "tone": "positive" | "neutral" | "negative",
    "confidence": 0.0-1.0
  }},
  "customer": {{
    "sentiment": 0.0-1.0,
    "engagement": 0.0-1.0,
    "tone": "positive" | "neutral" | "negative",
    "interest": 0.0-1.0
  }},
  "tensionMoments": [
    {{
      "time": "MM:SS",
      "description": "what happened",
      "severity": "low" | "medium" | "high",
      "suggestion": "how to handle"
    }}
  ],
  "approachChangeSuggestions": [
    {{
      "time": "MM:SS",
      "reason": "why change approach",
      "suggestedApproach": "what to do instead"
    }}
  ]
}}

Transcription: "{transcription}\""""

NEXT_STEPS_SYSTEM_PROMPT = (
    "Você é um especialista em vendas e geração de propostas. Sempre responda APENAS com JSON válido."
)

NEXT_STEPS_USER_TEMPLATE = """Com base na seguinte transcrição de chamada de vendas e análise, gere próximos passos estratégicos, email de follow-up e proposta.

Transcrição:
"{transcription}"

Análise resumida:
- Sentimento: {sentiment}
- Engajamento: {engagement}
- Objeções: {objections}
- Sinais de compra: {buying_signals}

{customer_info}

Gere os próximos passos em formato JSON:

{{
  "immediate": [
    {{
      "action": "string",
      "priority": "high" | "medium" | "low",
      "deadline": "string (ex: 'within 24h', 'this week')",
      "description": "string"
    }}
  ],
  "shortTerm": [
    {{
      "action": "string",
      "timeline": "string (ex: '1-2 weeks')",
      "description": "string"
    }}
  ],
  "longTerm": [
    {{
      "action": "string",
      "timeline": "string (ex: '1-3 months')",
      "description": "string"
    }}
  ],
  "followUpEmail": {{
    "subject": "string",
    "body": "string (email completo)",
    "tone": "professional" | "friendly" | "urgent" | "casual"
  }},
  "proposalOutline": {{
    "title": "string",
    "sections": [
      {{
        "heading": "string",
        "content": "string",
        "order": number
      }}
    ],
    "keyPoints": ["string"],
    "pricingRecommendation": "string"
  }}
}}"""

ADVANCED_SYSTEM_PROMPT = (
    "Você é um analista especializado em análise avançada de chamadas de vendas. Sempre responda "
    "APENAS com JSON válido, sem texto adicional, markdown ou explicações."
)

ADVANCED_USER_TEMPLATE = """Você é um especialista em análise avançada de chamadas de vendas. Analise a seguinte transcrição e forneça uma análise completa e detalhada em formato JSON.

Transcrição:
"{transcription}"

Duração: {duration} segundos

{segments}

Forneça uma análise completa com os seguintes campos (responda APENAS em JSON válido):

{{
  "emotionAnalysis": {{
    "emotions": [{{"emotion": "joy" | "frustration" | "anxiety" | "confidence" | "neutral" | "excitement" | "calm" | "anger", "timestamp": "MM:SS", "intensity": 0-1, "speaker": "salesperson" | "customer" | "unknown"}}],
    "dominantEmotion": "string",
    "emotionTimeline": [{{"time": "MM:SS", "salespersonEmotion": "string", "customerEmotion": "string"}}]
  }},
  "silenceAnalysis": {{
    "silences": [{{"start": "MM:SS", "end": "MM:SS", "duration": number, "type": "strategic" | "discomfort" | "thinking" | "awkward", "context": "string"}}],
    "totalSilenceTime": number,
    "averageSilenceDuration": number,
    "strategicPauses": number,
    "uncomfortablePauses": number
  }},
  "interruptionAnalysis": {{
    "interruptions": [{{"timestamp": "MM:SS", "interrupter": "salesperson" | "customer", "interrupted": "salesperson" | "customer", "context": "string"}}],
    "salespersonInterruptions": number,
    "customerInterruptions": number,
    "interruptionRatio": number
  }},
  "toneAnalysis": {{
    "tones": [{{"timestamp": "MM:SS", "speaker": "salesperson" | "customer", "tone": "assertive" | "empathetic" | "defensive" | "neutral" | "aggressive" | "passive" | "enthusiastic", "confidence": 0-1}}],
    "salespersonToneProfile": {{"dominant": "string", "assertiveness": 0-1, "empathy": 0-1, "defensiveness": 0-1}},
    "customerToneProfile": {{"dominant": "string", "receptiveness": 0-1, "skepticism": 0-1, "engagement": 0-1}}
  }},
  "competitiveKeywords": {{
    "competitors": [{{"name": "string", "mentions": number, "context": ["string"], "sentiment": "positive" | "negative" | "neutral"}}],
    "competitiveMentions": number,
    "competitivePressure": "low" | "medium" | "high"
  }},
  "questionAnalysis": {{
    "questions": [{{"timestamp": "MM:SS", "speaker": "salesperson" | "customer", "text": "string", "type": "open" | "closed" | "probing" | "objection" | "clarification", "quality": "high" | "medium" | "low"}}],
    "questionCount": {{"salesperson": number, "customer": number}},
    "statementCount": {{"salesperson": number, "customer": number}},
    "questionToStatementRatio": number,
    "openQuestionRatio": number
  }},
  "closingAnalysis": {{
    "closingAttempts": [{{"timestamp": "MM:SS", "type": "assumptive" | "alternative" | "summary" | "direct" | "trial", "success": boolean, "response": "string"}}],
    "closingAttemptsCount": number,
    "successfulCloses": number,
    "closingRate": 0-1,
    "bestClosingMoment": "MM:SS"
  }},
  "rapportAnalysis": {{
    "rapportScore": 0-1,
    "rapportMoments": [{{"timestamp": "MM:SS", "type": "shared_interests" | "humor" | "empathy" | "agreement" | "personal_connection", "strength": 0-1}}],
    "connectionIndicators": ["string"],
    "rapportTrend": "improving" | "stable" | "declining"
  }},
  "persuasionScore": {{
    "overallScore": 0-100,
    "factors": {{"storytelling": 0-1, "socialProof": 0-1, "urgency": 0-1, "reciprocity": 0-1, "authority": 0-1, "consistency": 0-1}},
    "persuasionTechniques": [{{"technique": "string", "usage": number, "effectiveness": number}}],
    "recommendations": ["string"]
  }},
  "objectionTypes": {{
    "price": number,
    "timeline": number,
    "authority": number,
    "need": number,
    "product": number,
    "other": number
  }}
}}"""

REALTIME_SYSTEM_PROMPT = "Você é um assistente de vendas em tempo real. Responda APENAS com JSON válido."

REALTIME_USER_TEMPLATE = """Analise rapidamente este trecho de uma ligação de vendas em andamento. Responda APENAS em JSON válido, sem markdown ou texto adicional:

Transcrição: "{transcription}"

Retorne um objeto JSON com exatamente estes campos:
{{
  "sentiment": 0.5,
  "engagement": 0.5,
  "keywords": ["palavra1", "palavra2"],
  "suggestion": "sugestão curta"
}}

Onde:
- sentiment: número de 0 a 1 (0 = negativo, 1 = positivo)
- engagement: número de 0 a 1 (0 = baixo, 1 = alto)
- keywords: array de 2-4 strings com palavras-chave importantes
- suggestion: string com sugestão rápida (máximo 50 caracteres)"""


def build_objections_prompt(transcription: str) -> str:
    return OBJECTIONS_USER_TEMPLATE.format(transcription=transcription)


def build_sentiment_by_person_prompt(transcription: str) -> str:
    return SENTIMENT_BY_PERSON_USER_TEMPLATE.format(transcription=transcription)


def build_next_steps_prompt(
    transcription: str,
    analysis: Optional[Dict[str, Any]] = None,
    customer_info: Optional[Dict[str, Any]] = None
) -> str:
    """Next-steps prompt from the transcript and a summary of an earlier analysis"""
    analysis = analysis or {}
    indicators = analysis.get("salesIndicators") or {}

    return NEXT_STEPS_USER_TEMPLATE.format(
        transcription=transcription,
        sentiment=analysis.get("sentiment") or "N/A",
        engagement=analysis.get("engagement") or "N/A",
        objections=", ".join(indicators.get("objections") or []) or "Nenhuma",
        buying_signals=", ".join(indicators.get("buyingSignals") or []) or "Nenhum",
        customer_info=(
            f"Informações do cliente: {json.dumps(customer_info, ensure_ascii=False)}" if customer_info else ""
        )
    )


def build_advanced_prompt(
    transcription: str,
    duration: Optional[float] = None,
    segments: Optional[List[Dict[str, Any]]] = None
) -> str:
    return ADVANCED_USER_TEMPLATE.format(
        transcription=transcription,
        duration=f"{duration or 0:g}",
        segments=f"Segmentos temporais: {json.dumps(segments, ensure_ascii=False)}" if segments else ""
    )


def build_realtime_prompt(transcription: str) -> str:
    return REALTIME_USER_TEMPLATE.format(transcription=transcription)
