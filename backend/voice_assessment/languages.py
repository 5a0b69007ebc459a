"""
Languages, spoken phrases and the default question sets.

The transcription and sentiment services take the short language code;
speech synthesis takes the regional speech code.
"""

import logging
from typing import Mapping, Sequence

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class Language(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    speech_code: str


class Phrases(BaseModel):
    """Fixed lines the agent speaks outside of the questions themselves."""

    model_config = ConfigDict(frozen=True)

    greeting: str
    fallback: str
    ask_to_skip: str
    skip_confirmed: str
    skip_declined: str
    closing: str


LANGUAGES: dict[str, Language] = {
    "en": Language(code="en", name="English", speech_code="en-US"),
    "es": Language(code="es", name="Spanish", speech_code="es-ES"),
    "fr": Language(code="fr", name="French", speech_code="fr-FR"),
    "de": Language(code="de", name="German", speech_code="de-DE"),
    "hi": Language(code="hi", name="Hindi", speech_code="hi-IN"),
}

PHRASES: dict[str, Phrases] = {
    "en": Phrases(
        greeting="Hi, I'm here to listen. I'll ask you a few questions about how you've been feeling. Take your time.",
        fallback="Sorry, I didn't catch that. Could you say it again?",
        ask_to_skip="I couldn't hear you. Do you want to skip this question?",
        skip_confirmed="Okay, skipping this one.",
        skip_declined="Okay, please answer the question.",
        closing="Thank you for sharing. I'm preparing your summary now.",
    ),
    "es": Phrases(
        greeting="Hola, estoy aquí para escucharte. Te haré algunas preguntas sobre cómo te has sentido. Tómate tu tiempo.",
        fallback="Perdona, no te he entendido. ¿Puedes repetirlo?",
        ask_to_skip="No te he oído. ¿Quieres saltar esta pregunta?",
        skip_confirmed="De acuerdo, saltamos esta.",
        skip_declined="De acuerdo, por favor responde a la pregunta.",
        closing="Gracias por compartir. Estoy preparando tu resumen.",
    ),
    "fr": Phrases(
        greeting="Bonjour, je suis là pour vous écouter. Je vais vous poser quelques questions sur votre ressenti. Prenez votre temps.",
        fallback="Désolé, je n'ai pas compris. Pouvez-vous répéter ?",
        ask_to_skip="Je ne vous ai pas entendu. Voulez-vous passer cette question ?",
        skip_confirmed="D'accord, on passe à la suite.",
        skip_declined="D'accord, répondez à la question s'il vous plaît.",
        closing="Merci de votre partage. Je prépare votre résumé.",
    ),
    "de": Phrases(
        greeting="Hallo, ich höre dir zu. Ich stelle dir ein paar Fragen dazu, wie es dir in letzter Zeit ging. Lass dir Zeit.",
        fallback="Entschuldigung, das habe ich nicht verstanden. Kannst du es wiederholen?",
        ask_to_skip="Ich konnte dich nicht hören. Möchtest du diese Frage überspringen?",
        skip_confirmed="In Ordnung, wir überspringen diese Frage.",
        skip_declined="In Ordnung, bitte beantworte die Frage.",
        closing="Danke fürs Teilen. Ich bereite jetzt deine Zusammenfassung vor.",
    ),
    "hi": Phrases(
        greeting="नमस्ते, मैं आपकी बात सुनने के लिए यहाँ हूँ। मैं आपसे कुछ सवाल पूछूँगी कि आप कैसा महसूस कर रहे हैं। आराम से जवाब दीजिए।",
        fallback="माफ़ कीजिए, मैं समझ नहीं पाई। क्या आप फिर से बोल सकते हैं?",
        ask_to_skip="मुझे आपकी आवाज़ नहीं सुनाई दी। क्या आप यह सवाल छोड़ना चाहते हैं?",
        skip_confirmed="ठीक है, हम यह सवाल छोड़ देते हैं।",
        skip_declined="ठीक है, कृपया सवाल का जवाब दीजिए।",
        closing="बताने के लिए धन्यवाद। मैं आपका सारांश तैयार कर रही हूँ।",
    ),
}

DEFAULT_QUESTIONS: dict[str, tuple[str, ...]] = {
    "en": (
        "How have you been feeling overall over the past two weeks?",
        "How have you been sleeping lately?",
        "Have you felt anxious, worried or on edge recently?",
        "How connected do you feel to the people around you?",
        "What is something that has gone well for you recently?",
    ),
    "es": (
        "¿Cómo te has sentido en general durante las últimas dos semanas?",
        "¿Cómo has estado durmiendo últimamente?",
        "¿Te has sentido ansioso, preocupado o nervioso recientemente?",
        "¿Qué tan conectado te sientes con las personas que te rodean?",
        "¿Qué es algo que te ha salido bien recientemente?",
    ),
    "fr": (
        "Comment vous êtes-vous senti dans l'ensemble ces deux dernières semaines ?",
        "Comment dormez-vous ces derniers temps ?",
        "Vous êtes-vous senti anxieux, inquiet ou tendu récemment ?",
        "À quel point vous sentez-vous proche des personnes qui vous entourent ?",
        "Qu'est-ce qui s'est bien passé pour vous récemment ?",
    ),
    "de": (
        "Wie hast du dich in den letzten zwei Wochen insgesamt gefühlt?",
        "Wie hast du in letzter Zeit geschlafen?",
        "Hast du dich in letzter Zeit ängstlich, besorgt oder angespannt gefühlt?",
        "Wie verbunden fühlst du dich mit den Menschen um dich herum?",
        "Was ist in letzter Zeit gut für dich gelaufen?",
    ),
    "hi": (
        "पिछले दो हफ़्तों में आप कुल मिलाकर कैसा महसूस कर रहे हैं?",
        "आजकल आपकी नींद कैसी है?",
        "क्या हाल ही में आपने बेचैनी, चिंता या घबराहट महसूस की है?",
        "आप अपने आस-पास के लोगों से कितना जुड़ाव महसूस करते हैं?",
        "हाल ही में आपके साथ कौन सी अच्छी बात हुई है?",
    ),
}

FALLBACK_LANGUAGE = "en"


def get_language(code: str) -> Language:
    language = LANGUAGES.get(code)
    if language is None:
        logger.warning(f"Unknown language '{code}' - falling back to {FALLBACK_LANGUAGE}")
        return LANGUAGES[FALLBACK_LANGUAGE]
    return language


def get_phrases(code: str) -> Phrases:
    return PHRASES.get(code) or PHRASES[FALLBACK_LANGUAGE]


class StaticQuestionProvider:
    """QuestionProvider over an in-memory mapping of language code -> questions."""

    def __init__(self, questions: Mapping[str, Sequence[str]] = DEFAULT_QUESTIONS):
        self._questions = {code: tuple(items) for code, items in questions.items()}

    def get_questions(self, language_code: str) -> Sequence[str]:
        questions = self._questions.get(language_code)
        if questions is None:
            logger.warning(
                f"No questions for '{language_code}' - using {FALLBACK_LANGUAGE}"
            )
            questions = self._questions.get(FALLBACK_LANGUAGE, ())
        return questions
