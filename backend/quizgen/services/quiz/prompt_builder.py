"""Deterministic prompt rendering for quiz generation, regeneration and improvement.

The builder assembles the language-specific sections (context, requirements,
JSON format, example, type guidelines) and hands them to the ``.txt``
templates in ``quizgen.prompts``. Rendering never fails on missing optional
values: absent fields render as a "not specified" placeholder.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel

from quizgen.core.config import settings
from quizgen.prompts import get_improvement_prompt, get_quiz_prompt, get_regeneration_prompt
from quizgen.services.quiz.schemas import Difficulty, GenerationParameters, QuestionType

logger = logging.getLogger(__name__)

IMPROVEMENT_TYPES = ("clarity", "difficulty", "grammar", "options", "comprehensiveness")

_SENTENCE_ENDS = (".", "!", "?", "\n")

_VOCABULARY: Dict[str, Dict[str, Any]] = {
    "th": {
        "not_specified": "ไม่ระบุ",
        "none": "ไม่มี",
        "content": "เนื้อหาสำหรับสร้างข้อสอบ",
        "topic": "วิชา/หัวข้อ",
        "extra_context": "บริบทเพิ่มเติม",
        "question_type": "ประเภทคำถาม",
        "count": "จำนวนคำถาม",
        "count_unit": "ข้อ",
        "difficulty": "ระดับความยาก",
        "category": "หมวดหมู่",
        "language": "ภาษา",
        "language_name": "ภาษาไทย",
        "instructions": "คำแนะนำเพิ่มเติม",
        "explanations": "รวมคำอธิบายเฉลยทุกข้อ",
        "quiz_title": "ชื่อข้อสอบ",
        "reason": "เหตุผลที่ต้องเปลี่ยน",
        "default_reason": "ปรับปรุงคุณภาพของคำถาม",
        "replaced": "คำถามที่ต้องแทนที่",
        "no_duplicate": "คำถามใหม่ต้องไม่ซ้ำกับข้อความของคำถามเดิมด้านบน",
        "preserve_intent": "คงเจตนาเดิมของคำถามแต่ละข้อ",
        "question_types": {
            QuestionType.MULTIPLE_CHOICE: "คำถามปรนัยแบบเลือกตอบ (4 ตัวเลือก)",
            QuestionType.TRUE_FALSE: "คำถามแบบถูก/ผิด",
            QuestionType.ESSAY: "คำถามแบบอัตนัย",
            QuestionType.SHORT_ANSWER: "คำถามแบบตอบสั้น",
            QuestionType.FILL_IN_BLANK: "คำถามแบบเติมคำในช่องว่าง",
            QuestionType.MATCHING: "คำถามแบบจับคู่",
        },
        "difficulties": {
            Difficulty.EASY: "ง่าย (เหมาะสำหรับผู้เริ่มต้น)",
            Difficulty.MEDIUM: "ปานกลาง (เหมาะสำหรับผู้มีความรู้พื้นฐาน)",
            Difficulty.HARD: "ยาก (เหมาะสำหรับผู้มีความรู้ขั้นสูง)",
            Difficulty.EXPERT: "ผู้เชี่ยวชาญ (เหมาะสำหรับผู้เชี่ยวชาญ)",
        },
        "improvements": {
            "clarity": "ความชัดเจน: เขียนคำถามให้เข้าใจง่ายและไม่กำกวม",
            "difficulty": "ระดับความยาก: ปรับให้ตรงกับระดับที่กำหนด",
            "grammar": "ไวยากรณ์: แก้ไขการสะกดคำและไวยากรณ์",
            "options": "ตัวเลือก: ทำให้ตัวเลือกผิดน่าเชื่อถือมากขึ้น",
            "comprehensiveness": "ความครอบคลุม: ครอบคลุมแนวคิดสำคัญของเนื้อหา",
        },
        "type_rules": {
            QuestionType.MULTIPLE_CHOICE: [
                "ให้ตัวเลือก 4 ตัว",
                "ตัวเลือกผิดต้องดูน่าเชื่อถือและเป็นไปได้",
                "คำตอบถูกต้องเพียงหนึ่งเดียว ระบุเป็นลำดับตัวเลือก (เริ่มจาก 0) ใน correctAnswer",
                "หลีกเลี่ยงการใช้ \"ทั้งหมดที่กล่าวมา\" หรือ \"ไม่มีข้อใดถูก\" หากไม่จำเป็น",
            ],
            QuestionType.TRUE_FALSE: [
                "คำถามต้องชัดเจน ไม่กำกวม",
                "correctAnswer ต้องเป็น true หรือ false",
                "หลีกเลี่ยงคำศัพท์สัมพัทธ์ เช่น \"บางครั้ง\", \"มักจะ\"",
            ],
            QuestionType.ESSAY: [
                "คำถามต้องกระตุ้นให้คิดวิเคราะห์",
                "ระบุขอบเขตการตอบชัดเจน",
                "แนบเกณฑ์การประเมินใน rubric และคำสำคัญใน keywords",
            ],
            QuestionType.SHORT_ANSWER: [
                "คำตอบต้องสั้นและเฉพาะเจาะจง",
                "ระบุคำตอบที่ยอมรับได้ทั้งหมดใน correctAnswers",
            ],
            QuestionType.FILL_IN_BLANK: [
                "ใช้ ____ แทนช่องว่างในโจทย์",
                "ช่องว่างควรอยู่ในตำแหน่งสำคัญ",
                "คำตอบต้องเป็นคำหรือวลีเฉพาะเจาะจง ระบุใน correctAnswers",
            ],
            QuestionType.MATCHING: [
                "ให้อย่างน้อย 2 คู่ใน pairs แต่ละคู่มี left และ right",
                "รายการทั้งสองฝั่งต้องมีความสัมพันธ์ชัดเจน",
                "หลีกเลี่ยงการจับคู่ที่ชัดเจนเกินไป",
            ],
        },
        "skeleton": {
            "title": "ชื่อข้อสอบที่เหมาะสม",
            "description": "คำอธิบายสั้นๆ เกี่ยวกับข้อสอบ",
            "question": "ข้อความคำถาม",
            "option": "ตัวเลือกที่ {n}",
            "explanation": "คำอธิบายเหตุผลของคำตอบ",
            "rubric": "เกณฑ์การให้คะแนน",
            "keyword": "คำสำคัญ",
            "answer": "คำตอบที่ถูกต้อง",
            "left": "รายการฝั่งซ้าย {n}",
            "right": "รายการฝั่งขวา {n}",
        },
        "examples": {
            QuestionType.MULTIPLE_CHOICE: {
                "question": "โครงสร้างข้อมูลใดทำงานแบบเข้าก่อนออกก่อน (FIFO)",
                "options": ["สแตก", "คิว", "ต้นไม้", "กราฟ"],
                "correctAnswer": 1,
                "explanation": "คิวนำข้อมูลออกตามลำดับที่ใส่เข้าไป",
            },
            QuestionType.TRUE_FALSE: {
                "question": "การค้นหาแบบทวิภาคต้องใช้ข้อมูลที่เรียงลำดับแล้ว",
                "correctAnswer": True,
                "explanation": "การค้นหาแบบทวิภาคแบ่งครึ่งช่วงข้อมูลที่เรียงไว้ในแต่ละรอบ",
            },
            QuestionType.ESSAY: {
                "question": "อธิบายกระบวนการสังเคราะห์ด้วยแสงของพืช",
                "rubric": "กล่าวถึงคลอโรฟิลล์ ปฏิกิริยาที่ใช้แสง และการสร้างน้ำตาลกลูโคส",
                "keywords": ["คลอโรฟิลล์", "แสง", "กลูโคส"],
                "explanation": "คำตอบที่ดีต้องอธิบายทั้งขั้นตอนที่ใช้แสงและไม่ใช้แสง",
            },
            QuestionType.SHORT_ANSWER: {
                "question": "สัญลักษณ์ทางเคมีของน้ำคืออะไร",
                "correctAnswers": ["H2O"],
                "explanation": "น้ำประกอบด้วยไฮโดรเจน 2 อะตอมและออกซิเจน 1 อะตอม",
            },
            QuestionType.FILL_IN_BLANK: {
                "question": "เมืองหลวงของประเทศญี่ปุ่นคือ ____",
                "correctAnswers": ["โตเกียว"],
                "explanation": "โตเกียวเป็นเมืองหลวงของญี่ปุ่น",
            },
            QuestionType.MATCHING: {
                "question": "จับคู่ประเทศกับเมืองหลวง",
                "pairs": [
                    {"left": "ไทย", "right": "กรุงเทพฯ"},
                    {"left": "ญี่ปุ่น", "right": "โตเกียว"},
                    {"left": "ฝรั่งเศส", "right": "ปารีส"},
                ],
                "explanation": "แต่ละประเทศจับคู่กับเมืองหลวงของตน",
            },
        },
    },
    "en": {
        "not_specified": "Not specified",
        "none": "None",
        "content": "Source material",
        "topic": "Subject/topic",
        "extra_context": "Additional context",
        "question_type": "Question type",
        "count": "Number of questions",
        "count_unit": "questions",
        "difficulty": "Difficulty",
        "category": "Category",
        "language": "Language",
        "language_name": "English",
        "instructions": "Additional instructions",
        "explanations": "Include an explanation for every answer",
        "quiz_title": "Quiz title",
        "reason": "Reason for replacement",
        "default_reason": "Improve question quality",
        "replaced": "Questions being replaced",
        "no_duplicate": "New questions must not duplicate the text of the original questions above",
        "preserve_intent": "Preserve the original intent of every question",
        "question_types": {
            QuestionType.MULTIPLE_CHOICE: "Multiple choice (4 options)",
            QuestionType.TRUE_FALSE: "True/false",
            QuestionType.ESSAY: "Essay",
            QuestionType.SHORT_ANSWER: "Short answer",
            QuestionType.FILL_IN_BLANK: "Fill in the blank",
            QuestionType.MATCHING: "Matching",
        },
        "difficulties": {
            Difficulty.EASY: "Easy (suitable for beginners)",
            Difficulty.MEDIUM: "Medium (requires basic knowledge)",
            Difficulty.HARD: "Hard (requires advanced knowledge)",
            Difficulty.EXPERT: "Expert (for specialists)",
        },
        "improvements": {
            "clarity": "Clarity: make every question easy to understand and unambiguous",
            "difficulty": "Difficulty: align each question with the requested level",
            "grammar": "Grammar: fix spelling and grammar",
            "options": "Options: make wrong options more plausible",
            "comprehensiveness": "Comprehensiveness: cover the key concepts of the material",
        },
        "type_rules": {
            QuestionType.MULTIPLE_CHOICE: [
                "Provide exactly 4 options",
                "Wrong options must be plausible",
                "Exactly one correct answer, given as the option index (starting at 0) in correctAnswer",
                "Avoid \"all of the above\" and \"none of the above\" unless necessary",
            ],
            QuestionType.TRUE_FALSE: [
                "The statement must be clear and unambiguous",
                "correctAnswer must be true or false",
                "Avoid relative terms such as \"sometimes\" or \"usually\"",
            ],
            QuestionType.ESSAY: [
                "The question must require analysis",
                "State the expected scope of the answer",
                "Include grading criteria in rubric and key terms in keywords",
            ],
            QuestionType.SHORT_ANSWER: [
                "The answer must be short and specific",
                "List every acceptable answer in correctAnswers",
            ],
            QuestionType.FILL_IN_BLANK: [
                "Mark the blank with ____",
                "Place the blank on a key term",
                "Answers must be specific words or phrases listed in correctAnswers",
            ],
            QuestionType.MATCHING: [
                "Provide at least 2 pairs, each with left and right",
                "Both sides must be clearly related",
                "Avoid pairings that are obvious",
            ],
        },
        "skeleton": {
            "title": "A fitting quiz title",
            "description": "A short description of the quiz",
            "question": "Question text",
            "option": "Option {n}",
            "explanation": "Why the answer is correct",
            "rubric": "Grading criteria",
            "keyword": "key term",
            "answer": "Correct answer",
            "left": "Left item {n}",
            "right": "Right item {n}",
        },
        "examples": {
            QuestionType.MULTIPLE_CHOICE: {
                "question": "Which data structure follows the first-in, first-out principle?",
                "options": ["Stack", "Queue", "Tree", "Graph"],
                "correctAnswer": 1,
                "explanation": "A queue removes elements in the order they were added.",
            },
            QuestionType.TRUE_FALSE: {
                "question": "Binary search requires the input to be sorted.",
                "correctAnswer": True,
                "explanation": "Binary search halves a sorted range on every step.",
            },
            QuestionType.ESSAY: {
                "question": "Explain how photosynthesis converts light energy into chemical energy.",
                "rubric": "Mentions chlorophyll, the light reactions and glucose production",
                "keywords": ["chlorophyll", "light", "glucose"],
                "explanation": "A good answer covers both the light and dark reactions.",
            },
            QuestionType.SHORT_ANSWER: {
                "question": "What is the chemical formula of water?",
                "correctAnswers": ["H2O"],
                "explanation": "Water has two hydrogen atoms and one oxygen atom.",
            },
            QuestionType.FILL_IN_BLANK: {
                "question": "The capital city of Japan is ____.",
                "correctAnswers": ["Tokyo"],
                "explanation": "Tokyo is the capital of Japan.",
            },
            QuestionType.MATCHING: {
                "question": "Match each country with its capital.",
                "pairs": [
                    {"left": "Thailand", "right": "Bangkok"},
                    {"left": "Japan", "right": "Tokyo"},
                    {"left": "France", "right": "Paris"},
                ],
                "explanation": "Each country is paired with its capital city.",
            },
        },
    },
}


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _bullets(lines: Iterable[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def _question_dict(question: Any) -> Dict[str, Any]:
    if isinstance(question, BaseModel):
        return question.model_dump(by_alias=True, exclude_none=True, mode="json")
    return dict(question)


# ── JSON skeletons (one per question type) ────────────────


def _choice_fields(sk: Dict[str, str]) -> Dict[str, Any]:
    return {"options": [sk["option"].format(n=n) for n in range(1, 5)], "correctAnswer": 0}


def _true_false_fields(sk: Dict[str, str]) -> Dict[str, Any]:
    return {"correctAnswer": True}


def _essay_fields(sk: Dict[str, str]) -> Dict[str, Any]:
    return {"rubric": sk["rubric"], "keywords": [sk["keyword"]]}


def _answers_fields(sk: Dict[str, str]) -> Dict[str, Any]:
    return {"correctAnswers": [sk["answer"]]}


def _matching_fields(sk: Dict[str, str]) -> Dict[str, Any]:
    return {
        "pairs": [
            {"left": sk["left"].format(n=n), "right": sk["right"].format(n=n)} for n in (1, 2)
        ]
    }


_SKELETON_FIELDS = {
    QuestionType.MULTIPLE_CHOICE: _choice_fields,
    QuestionType.TRUE_FALSE: _true_false_fields,
    QuestionType.ESSAY: _essay_fields,
    QuestionType.SHORT_ANSWER: _answers_fields,
    QuestionType.FILL_IN_BLANK: _answers_fields,
    QuestionType.MATCHING: _matching_fields,
}


class PromptBuilder:
    """Renders generation prompts from ``GenerationParameters``."""

    def __init__(self, max_content_length: Optional[int] = None):
        self.max_content_length = max_content_length or settings.PROMPT_MAX_CONTENT_LENGTH

    # ── Public API ────────────────────────────────────────

    def build_quiz_prompt(self, params: Union[GenerationParameters, Dict[str, Any]]) -> str:
        params = self._coerce(params)
        vocab = _VOCABULARY[params.language]

        prompt = get_quiz_prompt(
            params.language,
            context=self._context_section(params, vocab),
            requirements=self._requirements_section(params, vocab, params.number_of_questions),
            json_format=_dumps(self._quiz_skeleton(params, vocab)),
            example=self._example_section(params, vocab),
            type_rules=_bullets(vocab["type_rules"][params.question_type]),
        )
        logger.debug(
            "Quiz prompt built: type=%s count=%d difficulty=%s language=%s chars=%d",
            params.question_type.value, params.number_of_questions,
            params.difficulty.value, params.language, len(prompt),
        )
        return prompt

    def build_regeneration_prompt(
        self,
        quiz: Any,
        questions_to_replace: Sequence[Any],
        params: Union[GenerationParameters, Dict[str, Any]],
        reason: Optional[str] = None,
    ) -> str:
        params = self._coerce(params)
        vocab = _VOCABULARY[params.language]
        replaced = [_question_dict(q) for q in questions_to_replace]
        title = self._quiz_field(quiz, "title") or vocab["not_specified"]
        topic = params.topic or self._quiz_field(quiz, "topic") or vocab["not_specified"]

        context_lines = [
            f"{vocab['quiz_title']}: {title}",
            f"{vocab['topic']}: {topic}",
            f"{vocab['reason']}: {(reason or '').strip() or vocab['default_reason']}",
        ]
        if params.content:
            context_lines.append(f"{vocab['content']}:\n{self.truncate_content(params.content)}")
        if params.context:
            context_lines.append(f"{vocab['extra_context']}: {params.context}")
        context_lines.append(f"{vocab['replaced']}:\n{_dumps(replaced)}")
        context_lines.append(vocab["no_duplicate"])

        prompt = get_regeneration_prompt(
            params.language,
            context="\n".join(context_lines),
            requirements=self._requirements_section(params, vocab, len(replaced)),
            json_format=_dumps({"questions": [self._question_skeleton(params, vocab)]}),
            example=self._example_section(params, vocab),
            type_rules=_bullets(vocab["type_rules"][params.question_type]),
        )
        logger.debug("Regeneration prompt built: replacing=%d chars=%d", len(replaced), len(prompt))
        return prompt

    def build_improvement_prompt(
        self,
        questions: Sequence[Any],
        params: Union[GenerationParameters, Dict[str, Any]],
        improvement_types: Optional[Sequence[str]] = None,
        issues: Optional[Sequence[str]] = None,
    ) -> str:
        params = self._coerce(params)
        vocab = _VOCABULARY[params.language]

        selected = self._improvement_types(improvement_types)
        issue_lines = [str(issue).strip() for issue in issues or [] if str(issue).strip()]
        requirements = [
            f"{vocab['difficulty']}: {vocab['difficulties'][params.difficulty]}",
            f"{vocab['language']}: {vocab['language_name']}",
            vocab["preserve_intent"],
        ]
        if params.instructions:
            requirements.append(f"{vocab['instructions']}: {params.instructions}")

        prompt = get_improvement_prompt(
            params.language,
            questions_json=_dumps([_question_dict(q) for q in questions]),
            improvement_types=_bullets(vocab["improvements"][t] for t in selected),
            issues=_bullets(issue_lines) if issue_lines else vocab["none"],
            requirements=_bullets(requirements),
            json_format=_dumps({"questions": [self._question_skeleton(params, vocab)]}),
        )
        logger.debug("Improvement prompt built: questions=%d types=%s", len(questions), selected)
        return prompt

    def truncate_content(self, content: Optional[str]) -> str:
        """Cut *content* to the configured window, preferring a sentence boundary."""
        if not content:
            return ""
        limit = self.max_content_length
        if len(content) <= limit:
            return content

        truncated = content[:limit]
        boundary = max(truncated.rfind(mark) for mark in _SENTENCE_ENDS)
        if boundary > limit * 0.8:
            return truncated[: boundary + 1]
        return truncated + "..."

    # ── Sections ──────────────────────────────────────────

    def _context_section(self, params: GenerationParameters, vocab: Dict[str, Any]) -> str:
        content = self.truncate_content(params.content) or vocab["not_specified"]
        lines = [
            f"{vocab['topic']}: {params.topic or vocab['not_specified']}",
            f"{vocab['content']}:\n{content}",
        ]
        if params.context:
            lines.append(f"{vocab['extra_context']}: {params.context}")
        return "\n".join(lines)

    def _requirements_section(
        self, params: GenerationParameters, vocab: Dict[str, Any], count: int
    ) -> str:
        lines = [
            f"{vocab['question_type']}: {vocab['question_types'][params.question_type]}",
            f"{vocab['count']}: {count} {vocab['count_unit']}",
            f"{vocab['difficulty']}: {vocab['difficulties'][params.difficulty]}",
            f"{vocab['category']}: {params.category or vocab['not_specified']}",
            f"{vocab['language']}: {vocab['language_name']}",
        ]
        if params.include_explanations:
            lines.append(vocab["explanations"])
        if params.instructions:
            lines.append(f"{vocab['instructions']}: {params.instructions}")
        return _bullets(lines)

    def _question_skeleton(self, params: GenerationParameters, vocab: Dict[str, Any]) -> Dict[str, Any]:
        sk = vocab["skeleton"]
        skeleton: Dict[str, Any] = {"question": sk["question"], "type": params.question_type.value}
        skeleton.update(_SKELETON_FIELDS[params.question_type](sk))
        if params.include_explanations:
            skeleton["explanation"] = sk["explanation"]
        skeleton["points"] = 1
        skeleton["difficulty"] = params.difficulty.value
        return skeleton

    def _quiz_skeleton(self, params: GenerationParameters, vocab: Dict[str, Any]) -> Dict[str, Any]:
        sk = vocab["skeleton"]
        return {
            "title": sk["title"],
            "description": sk["description"],
            "questions": [self._question_skeleton(params, vocab)],
        }

    def _example_section(self, params: GenerationParameters, vocab: Dict[str, Any]) -> str:
        example = dict(vocab["examples"][params.question_type])
        if not params.include_explanations:
            example.pop("explanation", None)
        ordered = {"question": example.pop("question"), "type": params.question_type.value}
        ordered.update(example)
        ordered["points"] = 1
        ordered["difficulty"] = params.difficulty.value
        return _dumps(ordered)

    # ── Helpers ───────────────────────────────────────────

    @staticmethod
    def _coerce(params: Union[GenerationParameters, Dict[str, Any]]) -> GenerationParameters:
        if isinstance(params, GenerationParameters):
            return params
        return GenerationParameters.model_validate(params or {})

    @staticmethod
    def _quiz_field(quiz: Any, name: str) -> str:
        if isinstance(quiz, BaseModel):
            value = getattr(quiz, name, "")
        elif isinstance(quiz, dict):
            value = quiz.get(name, "")
        else:
            value = ""
        return value.strip() if isinstance(value, str) else ""

    @staticmethod
    def _improvement_types(requested: Optional[Sequence[str]]) -> List[str]:
        if not requested:
            return list(IMPROVEMENT_TYPES)
        selected = []
        for name in requested:
            key = str(name).strip().lower()
            if key not in IMPROVEMENT_TYPES:
                logger.warning("Ignoring unknown improvement type %r", name)
            elif key not in selected:
                selected.append(key)
        return selected or list(IMPROVEMENT_TYPES)
