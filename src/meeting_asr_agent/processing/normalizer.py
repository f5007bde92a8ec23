"""
Нормализация ответов ASR-провайдеров в CanonicalResult.

Назначение:
- один канонический транскрипт/саммари для Tingwu и Volcengine
- ответ провайдера — нетипизированное дерево: каждое поле ищется цепочкой
  именованных проб, первая найденная побеждает
- отсутствующее или неожиданного типа поле = "нет данных", не ошибка

Приоритеты:
- транскрипт: документ Transcription → абзацы → предложения/utterances → плоский текст
- саммари: документ Summarization (v2 → плоский) → inline Summarization
- ключевые пункты / действия: документ MeetingAssistance → KeyPoints/ActionItems
  в объекте саммари
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from meeting_asr_agent.domain.models import CanonicalResult, Utterance

# Виды вспомогательных документов
DOC_TRANSCRIPTION = "transcription"
DOC_SUMMARIZATION = "summarization"
DOC_ASSISTANCE = "meeting_assistance"

_POINTER_KEYS: dict[str, tuple[str, ...]] = {
    DOC_TRANSCRIPTION: ("Transcription", "TranscriptionUrl", "transcription_url"),
    DOC_SUMMARIZATION: ("Summarization", "SummarizationUrl", "summarization_url"),
    DOC_ASSISTANCE: ("MeetingAssistance", "MeetingAssistanceUrl", "meeting_assistance_url"),
}

_PARAGRAPH_KEYS = ("Paragraphs", "paragraphs")
_SENTENCE_KEYS = ("Sentences", "sentences", "Utterances", "utterances")
_FLAT_TEXT_KEYS = ("Text", "text", "Transcript", "transcript")

_SPEAKER_NAME_KEYS = ("SpeakerName", "speakerName", "speaker_name")
_SPEAKER_KEYS = ("Speaker", "speaker")
_ROLE_KEYS = ("Role", "role")
_SPEAKER_ID_KEYS = ("SpeakerId", "speakerId", "speaker_id")

_TEXT_KEYS = ("Text", "text", "Content", "content", "Sentence", "sentence")
_WORDS_KEYS = ("Words", "words")
_WORD_TEXT_KEYS = ("Text", "text", "Word", "word")

_V2_SUMMARY_KEYS = (
    "ParagraphTitle",
    "ParagraphSummary",
    "ConversationalSummary",
    "QuestionsAnsweringSummary",
    "MindMapSummary",
)

SECTION_SUMMARY = "### Summary"
SECTION_CONVERSATIONAL = "### Conversational Summary"
SECTION_QA = "### Q&A"
SECTION_MIND_MAP = "### Mind Map"


# =============================================================================
# ПРОБЫ ПОЛЕЙ
# =============================================================================
def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def first_str(node: Any, keys: Iterable[str]) -> str | None:
    """Первое непустое строковое значение по списку ключей."""
    d = _as_dict(node)
    if d is None:
        return None
    for key in keys:
        value = d.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def first_list(node: Any, keys: Iterable[str]) -> list[Any] | None:
    d = _as_dict(node)
    if d is None:
        return None
    for key in keys:
        value = d.get(key)
        if isinstance(value, list):
            return value
    return None


def _scalar_id(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def result_block(raw: Any) -> dict[str, Any]:
    """
    Объект Result из ответа статуса (Tingwu кладёт его в Data.Result,
    Volcengine отдаёт resp целиком).
    """
    d = _as_dict(raw) or {}
    inner = _as_dict(d.get("Result"))
    return inner if inner is not None else d


def auxiliary_pointers(raw: Any) -> dict[str, str]:
    """
    Ссылки на вспомогательные документы (вид -> URL), в фиксированном порядке.
    """
    block = result_block(raw)
    out: dict[str, str] = {}
    for kind, keys in _POINTER_KEYS.items():
        for key in keys:
            value = block.get(key)
            if isinstance(value, str) and value.strip().lower().startswith(("http://", "https://")):
                out[kind] = value.strip()
                break
    return out


# =============================================================================
# ТРАНСКРИПТ
# =============================================================================
def speaker_of(item: Any) -> str | None:
    """
    SpeakerName → Speaker → Role → числовой SpeakerId ("Speaker {id}") → None.
    """
    d = _as_dict(item)
    if d is None:
        return None

    name = first_str(d, _SPEAKER_NAME_KEYS) or first_str(d, _SPEAKER_KEYS) or first_str(d, _ROLE_KEYS)
    if name:
        return name

    for key in (*_SPEAKER_KEYS, *_SPEAKER_ID_KEYS):
        sid = _scalar_id(d.get(key))
        if sid is not None:
            return f"Speaker {sid}"

    # Volcengine: additions.speaker
    additions = _as_dict(d.get("additions"))
    sid = _scalar_id(additions.get("speaker")) if additions else None
    if sid is not None:
        return f"Speaker {sid}"
    return None


def text_of(item: Any) -> str:
    """
    Text-варианты → склейка Words[].Text без разделителя → "".
    """
    if isinstance(item, str):
        return item.strip()
    d = _as_dict(item)
    if d is None:
        return ""

    text = first_str(d, _TEXT_KEYS)
    if text:
        return text

    words = first_list(d, _WORDS_KEYS) or []
    parts: list[str] = []
    for word in words:
        if isinstance(word, str):
            parts.append(word)
            continue
        # пробелы внутри слов сохраняются: склейка идёт без разделителя
        wd = _as_dict(word) or {}
        for key in _WORD_TEXT_KEYS:
            value = wd.get(key)
            if isinstance(value, str):
                parts.append(value)
                break
    return "".join(parts).strip()


def _utterances_from_items(items: list[Any]) -> list[Utterance]:
    out: list[Utterance] = []
    for item in items:
        text = text_of(item)
        if not text:
            continue
        out.append(Utterance(text=text, speaker=speaker_of(item)))
    return out


def inline_utterances(node: Any) -> list[Utterance]:
    """
    Абзацы → предложения/utterances → плоский текст. Пустой источник пропускается.
    """
    d = _as_dict(node)
    if d is None:
        return []

    for keys in (_PARAGRAPH_KEYS, _SENTENCE_KEYS):
        items = first_list(d, keys)
        if items:
            utterances = _utterances_from_items(items)
            if utterances:
                return utterances

    text = first_str(d, _FLAT_TEXT_KEYS)
    if text:
        return [Utterance(text=text)]
    return []


def document_utterances(doc: Any) -> list[Utterance]:
    d = _as_dict(doc)
    if d is None:
        return []
    nested = _as_dict(d.get("Transcription"))
    if nested is not None:
        utterances = inline_utterances(nested)
        if utterances:
            return utterances
    return inline_utterances(d)


def build_transcript(result: dict[str, Any], documents: Mapping[str, Any]) -> list[Utterance]:
    utterances = document_utterances(documents.get(DOC_TRANSCRIPTION))
    if utterances:
        return utterances
    return inline_utterances(result)


# =============================================================================
# САММАРИ
# =============================================================================
def _summary_node(doc: Any) -> dict[str, Any] | None:
    d = _as_dict(doc)
    if d is None:
        return None
    nested = _as_dict(d.get("Summarization"))
    return nested if nested is not None else d


def _mind_map_titles(nodes: list[Any]) -> list[str]:
    titles: list[str] = []
    for node in nodes:
        d = _as_dict(node)
        if d is None:
            continue
        title = first_str(d, ("Title", "title"))
        if title:
            titles.append(title)
        children = first_list(d, ("Topic", "Topics", "Children", "children"))
        if children:
            titles.extend(_mind_map_titles(children))
    return titles


def _conversational_lines(items: list[Any]) -> list[str]:
    lines: list[str] = []
    for item in items:
        summary = first_str(item, ("Summary", "summary"))
        if not summary:
            continue
        speaker = speaker_of(item)
        lines.append(f"{speaker}: {summary}" if speaker else summary)
    return lines


def _qa_blocks(items: list[Any]) -> list[str]:
    blocks: list[str] = []
    for item in items:
        question = first_str(item, ("Question", "question"))
        answer = first_str(item, ("Answer", "answer"))
        if not question and not answer:
            continue
        blocks.append(f"Q: {question or ''}\nA: {answer or ''}")
    return blocks


def summary_v2(node: dict[str, Any]) -> tuple[str | None, str | None] | None:
    """
    Вложенная структура v2. None — структуры нет вовсе.
    """
    if not any(key in node for key in _V2_SUMMARY_KEYS):
        return None

    headline = first_str(node, ("ParagraphTitle",))
    sections: list[str] = []

    body = first_str(node, ("ParagraphSummary",))
    if body:
        sections.append(SECTION_SUMMARY + "\n" + body)

    conversational = _conversational_lines(first_list(node, ("ConversationalSummary",)) or [])
    if conversational:
        sections.append(SECTION_CONVERSATIONAL + "\n" + "\n".join(conversational))

    qa = _qa_blocks(first_list(node, ("QuestionsAnsweringSummary",)) or [])
    if qa:
        sections.append(SECTION_QA + "\n" + "\n\n".join(qa))

    mind_map = _mind_map_titles(first_list(node, ("MindMapSummary",)) or [])
    if mind_map:
        sections.append(SECTION_MIND_MAP + "\n" + ", ".join(mind_map))

    if not headline and not sections:
        return None
    return headline, ("\n\n".join(sections) if sections else None)


def summary_flat(node: Any) -> tuple[str | None, str | None] | None:
    headline = first_str(node, ("Headline", "headline", "Title", "title"))
    body = first_str(node, ("Summary", "summary", "Paragraph", "paragraph"))
    if not headline and not body:
        return None
    return headline, body


def build_summary(
    result: dict[str, Any], documents: Mapping[str, Any]
) -> tuple[str | None, str | None]:
    node = _summary_node(documents.get(DOC_SUMMARIZATION))
    if node is not None:
        found = summary_v2(node) or summary_flat(node)
        if found:
            return found
    inline = summary_flat(_as_dict(result.get("Summarization")))
    return inline or (None, None)


# =============================================================================
# КЛЮЧЕВЫЕ ПУНКТЫ / ДЕЙСТВИЯ
# =============================================================================
def _texts(items: list[Any] | None, keys: tuple[str, ...] = _TEXT_KEYS) -> list[str]:
    out: list[str] = []
    for item in items or []:
        if isinstance(item, str):
            value = item.strip()
        else:
            value = first_str(item, keys) or ""
        if value:
            out.append(value)
    return out


def _assistance_node(doc: Any) -> dict[str, Any] | None:
    d = _as_dict(doc)
    if d is None:
        return None
    nested = _as_dict(d.get("MeetingAssistance"))
    return nested if nested is not None else d


def build_assistance(
    result: dict[str, Any], documents: Mapping[str, Any]
) -> tuple[list[str] | None, list[str] | None, list[str] | None]:
    """
    Возвращает (keywords, key_points, action_items).
    Поле, заполненное источником с более высоким приоритетом, не перезаписывается.
    """
    keywords: list[str] | None = None
    key_points: list[str] | None = None
    action_items: list[str] | None = None

    node = _assistance_node(documents.get(DOC_ASSISTANCE))
    if node is not None:
        kw = _texts(first_list(node, ("Keywords", "keywords")), ("Word", "word", "Keyword", "Text", "text"))
        sentences = _texts(first_list(node, ("KeySentences", "key_sentences", "KeyPoints")))
        if kw or sentences:
            keywords = kw or None
            key_points = sentences
        actions = _texts(first_list(node, ("Actions", "ActionItems", "action_items")))
        if actions:
            action_items = actions

    summary_sources = (
        _summary_node(documents.get(DOC_SUMMARIZATION)),
        _as_dict(result.get("Summarization")),
    )
    for source in summary_sources:
        if source is None:
            continue
        if key_points is None:
            kp = _texts(first_list(source, ("KeyPoints", "key_points")))
            if kp:
                key_points = kp
        if action_items is None:
            ai = _texts(first_list(source, ("ActionItems", "action_items")))
            if ai:
                action_items = ai
    return keywords, key_points, action_items


# =============================================================================
# ТОЧКА ВХОДА
# =============================================================================
def normalize(raw: Any, documents: Mapping[str, Any] | None = None) -> CanonicalResult:
    """
    Детерминированная нормализация: одинаковый вход → одинаковый CanonicalResult.
    Никогда не бросает исключений из-за формы данных.
    """
    docs = documents or {}
    result = result_block(raw)

    headline, body = build_summary(result, docs)
    keywords, key_points, action_items = build_assistance(result, docs)
    return CanonicalResult(
        utterances=build_transcript(result, docs),
        summary_headline=headline,
        summary_body=body,
        keywords=keywords,
        key_points=key_points,
        action_items=action_items,
    )
