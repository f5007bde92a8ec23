from __future__ import annotations

from meeting_asr_agent.processing.normalizer import (
    DOC_ASSISTANCE,
    DOC_SUMMARIZATION,
    DOC_TRANSCRIPTION,
    auxiliary_pointers,
    normalize,
    speaker_of,
    text_of,
)


def test_utterances_with_optional_speaker() -> None:
    raw = {
        "utterances": [
            {"text": "Hello World"},
            {"text": "This is a test", "speaker": "Alice"},
        ]
    }
    assert normalize(raw).transcript == "Hello World\nAlice: This is a test"


def test_flat_text_without_utterance_list() -> None:
    assert normalize({"text": "Full transcript text here."}).transcript == "Full transcript text here."


def test_speaker_fallback_chain() -> None:
    assert speaker_of({"SpeakerName": "Bob", "Speaker": "x", "SpeakerId": 3}) == "Bob"
    assert speaker_of({"Role": "host", "SpeakerId": 3}) == "host"
    assert speaker_of({"SpeakerId": 3}) == "Speaker 3"
    assert speaker_of({"SpeakerId": "7"}) == "Speaker 7"
    assert speaker_of({"additions": {"speaker": "2"}}) == "Speaker 2"
    assert speaker_of({"Text": "no speaker"}) is None


def test_text_falls_back_to_words_without_separator() -> None:
    assert text_of({"Words": [{"Text": "Hel"}, {"Text": "lo"}, {"Text": ""}]}) == "Hello"
    assert text_of({"Text": "  direct  ", "Words": [{"Text": "x"}]}) == "direct"
    assert text_of({"Words": "not-a-list"}) == ""


def test_paragraphs_preferred_over_sentences_and_empty_items_skipped() -> None:
    raw = {
        "Result": {
            "Paragraphs": [
                {"SpeakerId": 1, "Words": [{"Text": "Good "}, {"Text": "morning"}]},
                {"SpeakerId": 2, "Text": ""},
                {"SpeakerId": 2, "Text": "Hi"},
            ],
            "Sentences": [{"Text": "ignored"}],
        }
    }
    assert normalize(raw).transcript == "Speaker 1: Good morning\nSpeaker 2: Hi"


def test_empty_paragraphs_fall_through_to_sentences() -> None:
    raw = {"Paragraphs": [{"Text": ""}], "Sentences": [{"Text": "used"}]}
    assert normalize(raw).transcript == "used"


def test_transcription_document_wins_over_inline() -> None:
    raw = {"Result": {"Transcription": "https://oss/t.json", "Text": "inline"}}
    docs = {DOC_TRANSCRIPTION: {"Transcription": {"Paragraphs": [{"SpeakerName": "Ann", "Text": "from doc"}]}}}
    assert normalize(raw, docs).transcript == "Ann: from doc"


def test_auxiliary_pointers_only_http_urls() -> None:
    raw = {
        "Result": {
            "Transcription": "https://oss/t.json",
            "Summarization": "not-a-url",
            "MeetingAssistance": {"nested": True},
        }
    }
    assert auxiliary_pointers(raw) == {DOC_TRANSCRIPTION: "https://oss/t.json"}


def test_summary_v2_sections_in_fixed_order() -> None:
    docs = {
        DOC_SUMMARIZATION: {
            "Summarization": {
                "ParagraphTitle": "Weekly sync",
                "ParagraphSummary": "Discussed roadmap.",
                "ConversationalSummary": [
                    {"SpeakerName": "Alice", "Summary": "Wants a release"},
                    {"Summary": "General agreement"},
                ],
                "QuestionsAnsweringSummary": [{"Question": "When?", "Answer": "Friday"}],
                "MindMapSummary": [{"Title": "Roadmap", "Topic": [{"Title": "Release"}]}],
            }
        }
    }
    result = normalize({}, docs)
    assert result.summary_headline == "Weekly sync"
    assert result.summary_body == (
        "### Summary\nDiscussed roadmap.\n\n"
        "### Conversational Summary\nAlice: Wants a release\nGeneral agreement\n\n"
        "### Q&A\nQ: When?\nA: Friday\n\n"
        "### Mind Map\nRoadmap, Release"
    )
    assert result.summary.startswith("Weekly sync\n\n### Summary\nDiscussed roadmap.")


def test_summary_flat_document_and_inline_fallback() -> None:
    docs = {DOC_SUMMARIZATION: {"Headline": "Doc headline", "Summary": "Doc body"}}
    raw = {"Summarization": {"Headline": "Inline", "Summary": "Inline body"}}
    assert normalize(raw, docs).summary == "Doc headline\n\nDoc body"
    assert normalize(raw).summary == "Inline\n\nInline body"


def test_assistance_document_has_priority_over_summary_lists() -> None:
    docs = {
        DOC_ASSISTANCE: {
            "MeetingAssistance": {
                "Keywords": [{"Word": "release"}, "budget"],
                "KeySentences": [{"Text": "Ship on Friday"}],
            }
        },
        DOC_SUMMARIZATION: {
            "Summary": "body",
            "KeyPoints": ["lower priority"],
            "ActionItems": ["Alice prepares notes"],
        },
    }
    result = normalize({}, docs)
    assert result.keywords == ["release", "budget"]
    assert result.key_points == ["Ship on Friday"]
    # у документа assistance нет Actions, поэтому берём из саммари
    assert result.action_items == ["Alice prepares notes"]
    assert result.key_points_text == "Keywords: release, budget\n- Ship on Friday"
    assert result.action_items_text == "- Alice prepares notes"


def test_inline_summary_lists_used_without_documents() -> None:
    raw = {"Summarization": {"KeyPoints": [{"Text": "Point A"}], "ActionItems": ["Do B"]}}
    result = normalize(raw)
    assert result.key_points == ["Point A"]
    assert result.action_items == ["Do B"]
    assert result.keywords is None


def test_malformed_payloads_degrade_to_empty_result() -> None:
    for raw in (None, [], "text", 42, {"Result": []}, {"utterances": "oops"}, {"Paragraphs": [None, 5, "x"]}):
        result = normalize(raw, {DOC_TRANSCRIPTION: ["bad"], DOC_SUMMARIZATION: "bad"})
        assert result.summary is None
    assert normalize({"Paragraphs": [None, 5]}).is_empty()


def test_normalize_is_deterministic() -> None:
    raw = {"Result": {"Sentences": [{"SpeakerId": 1, "Text": "a"}, {"SpeakerId": 2, "Text": "b"}]}}
    docs = {DOC_SUMMARIZATION: {"Headline": "h", "Summary": "s"}}
    assert normalize(raw, docs) == normalize(raw, docs)
