"""Locale-keyed message catalog for parser, validator and generator output.

Every user-visible string crosses the pipeline boundary through this module.
Thai is the default locale; English is a full translation. A key missing from
a locale falls back to the English text.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Optional

from quizgen.core.config import SUPPORTED_LANGUAGES, settings

logger = logging.getLogger(__name__)


MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        # ── Response parsing ──────────────────────────────
        "parse.empty_response": "Empty AI response received",
        "parse.invalid_json": "Invalid JSON format: {detail}",
        "parse.no_questions_array": "Response does not contain valid questions array",
        "parse.structure_failed": "Quiz structure validation failed",
        "parse.question_failed": "Question {number} validation failed",
        # ── Quiz shape ────────────────────────────────────
        "quiz.not_object": "Quiz data must be an object",
        "quiz.title_required": "Quiz must have a valid title",
        "quiz.questions_required": "Quiz must have a questions array",
        "quiz.questions_empty": "Quiz must have at least one question",
        "question.prefix": "Question {number}: {details}",
        # ── Question shape ────────────────────────────────
        "question.not_object": "Question must be an object",
        "question.text_required": "Question must have valid question text",
        "question.type_required": "Question must have a valid type",
        "question.type_unknown": "Unknown question type: {type}",
        "mc.options_required": "Multiple choice question must have options array",
        "mc.options_min": "Multiple choice question must have at least {min} options",
        "mc.options_non_empty": "All options must be non-empty strings",
        "mc.answer_required": "Multiple choice question must specify the correct answer",
        "mc.answer_out_of_range": "Correct answer index {index} is out of range (valid: 0-{max})",
        "mc.answer_not_in_options": "Correct answer must match one of the options",
        "tf.answer_bool": "True/false question must have boolean correctAnswer",
        "essay.rubric_str": "Essay question rubric must be a string",
        "essay.keywords_list": "Essay question keywords must be array of strings",
        "answers.list": "correctAnswers must be array of strings",
        "fib.answers_required": "Fill-in-the-blank question must have at least one correct answer",
        "matching.pairs_required": "Matching question must have at least 2 pairs",
        "matching.pair_invalid": "Matching pair {number} must have non-empty left and right text",
        # ── Basic quiz info ───────────────────────────────
        "title.required": "Quiz title is required",
        "title.too_short": "Quiz title must be at least 3 characters",
        "title.too_long": "Quiz title must not exceed {max} characters",
        "title.charset": "Quiz title contains invalid characters",
        "topic.too_long": "Topic must not exceed {max} characters",
        "description.too_long": "Description must not exceed {max} characters",
        "category.invalid": "Invalid category: {value}",
        "question_type.invalid": "Invalid question type: {value}",
        "difficulty.invalid": "Invalid difficulty level: {value}",
        "status.invalid": "Invalid status: {value}",
        "time_limit.range": "Time limit must be between {min}-{max} minutes",
        "user_id.required": "User ID is required",
        # ── Question rules ────────────────────────────────
        "questions.not_list": "Questions must be an array",
        "questions.too_few": "At least {min} question(s) required",
        "questions.too_many": "Too many questions: at most {max} allowed",
        "v.text_invalid": "Question {number}: question text is invalid",
        "v.text_empty": "Question {number}: question text must not be empty",
        "v.text_too_long": "Question {number}: question text is too long (max {max} characters)",
        "v.text_charset": "Question {number}: question text contains invalid characters",
        "v.type_invalid": "Question {number}: invalid question type",
        "v.explanation_too_long": "Question {number}: explanation is too long (max {max} characters)",
        "v.points_range": "Question {number}: points must be between {min}-{max}",
        "v.difficulty_invalid": "Question {number}: invalid difficulty level",
        "v.duplicate": "Question {number}: duplicates another question",
        "options.too_many": "Question {number}: at most {max} options allowed",
        "option.invalid": "Question {number}: option {option} is invalid",
        "option.too_long": "Question {number}: option {option} is too long (max {max} characters)",
        "options.duplicate": "Question {number}: options must be unique",
        "options.not_list": "Question {number}: options must be an array",
        "options.too_few": "Question {number}: at least {min} options required",
        "validation.failed": "Quiz validation failed",
        "validation.update_failed": "Update validation failed",
        # ── Advanced properties ───────────────────────────
        "tags.not_list": "Tags must be an array",
        "tags.too_many": "At most {max} tags allowed",
        "tag.not_string": "Tag {number}: must be a string",
        "tag.too_long": "Tag {number}: must not exceed {max} characters",
        "settings.not_object": "Settings must be an object",
        "is_public.not_bool": "isPublic must be a boolean",
        "folder_id.invalid": "Folder ID must be a positive integer",
        # ── Business rules ────────────────────────────────
        "business.published_no_questions": "Published quiz must have at least one question",
        "business.public_no_description": "Public quiz must have a description",
        "business.public_draft": "Public quiz must not be in draft status",
        "business.mc_min_options": "Multiple choice question {number}: at least 2 options required",
        "business.tf_two_options": "True/false question {number}: exactly 2 options required",
        # ── Quality ───────────────────────────────────────
        "quality.low_variety": "Questions lack variety in format",
        "quality.low_variety.fix": "Add questions of different types",
        "quality.difficulty_imbalance": "Difficulty levels are unevenly distributed",
        "quality.difficulty_imbalance.fix": "Balance the number of questions at each difficulty level",
        "quality.length_inconsistent": "Question lengths are inconsistent",
        "quality.length_inconsistent.fix": "Keep question lengths more uniform",
        "quality.answer_bias": "Correct answers are unevenly distributed across option positions",
        "quality.answer_bias.fix": "Spread correct answers evenly across the option positions",
        # ── Publication ───────────────────────────────────
        "publication.title_short": "Quiz title must be at least {min} characters",
        "publication.description_short": "Quiz description must be at least {min} characters",
        "publication.too_few_questions": "Quiz must have at least {min} questions",
        "publication.no_time_limit": "Quiz must have a time limit",
        "publication.explanations": "At least {percent}% of questions should have an explanation",
        # ── Regeneration ──────────────────────────────────
        "regen.invalid_indices": "Invalid question indices: {indices}",
        "regen.count_mismatch": "Expected {expected} regenerated questions, received {received}",
        "regen.duplicate": "Regenerated question {number} duplicates an existing question",
        # ── Estimation ────────────────────────────────────
        "estimate.large_quiz": "Consider breaking large quizzes into smaller sections for better user experience",
        "estimate.large_content": "Large content may result in longer generation times",
        "estimate.essay": "Essay questions require more detailed rubrics for grading",
        "estimate.hard": "Hard difficulty questions may take longer to generate and validate",
    },
    "th": {
        "parse.empty_response": "ไม่ได้รับข้อความตอบกลับจาก AI",
        "parse.invalid_json": "รูปแบบ JSON ไม่ถูกต้อง: {detail}",
        "parse.no_questions_array": "ข้อความตอบกลับไม่มีรายการคำถามที่ถูกต้อง",
        "parse.structure_failed": "โครงสร้างข้อสอบไม่ถูกต้อง",
        "parse.question_failed": "คำถามที่ {number} ไม่ผ่านการตรวจสอบ",
        "quiz.not_object": "ข้อมูลข้อสอบต้องเป็น object",
        "quiz.title_required": "ข้อสอบต้องมีชื่อที่ถูกต้อง",
        "quiz.questions_required": "ข้อสอบต้องมีรายการคำถาม",
        "quiz.questions_empty": "ข้อสอบต้องมีคำถามอย่างน้อยหนึ่งข้อ",
        "question.prefix": "คำถามที่ {number}: {details}",
        "question.not_object": "คำถามต้องเป็น object",
        "question.text_required": "คำถามต้องมีข้อความคำถามที่ถูกต้อง",
        "question.type_required": "คำถามต้องระบุประเภท",
        "question.type_unknown": "ไม่รู้จักประเภทคำถาม: {type}",
        "mc.options_required": "คำถามปรนัยต้องมีรายการตัวเลือก",
        "mc.options_min": "คำถามปรนัยต้องมีตัวเลือกอย่างน้อย {min} ตัว",
        "mc.options_non_empty": "ตัวเลือกทุกตัวต้องเป็นข้อความที่ไม่ว่าง",
        "mc.answer_required": "คำถามปรนัยต้องระบุคำตอบที่ถูกต้อง",
        "mc.answer_out_of_range": "ลำดับคำตอบที่ถูกต้อง {index} อยู่นอกช่วงตัวเลือก (0-{max})",
        "mc.answer_not_in_options": "คำตอบที่ถูกต้องต้องอยู่ในตัวเลือก",
        "tf.answer_bool": "คำถามถูก/ผิดต้องมี correctAnswer เป็น boolean",
        "essay.rubric_str": "เกณฑ์การให้คะแนนของคำถามอัตนัยต้องเป็นข้อความ",
        "essay.keywords_list": "คำสำคัญของคำถามอัตนัยต้องเป็นรายการข้อความ",
        "answers.list": "correctAnswers ต้องเป็นรายการข้อความ",
        "fib.answers_required": "คำถามเติมคำต้องมีคำตอบที่ถูกต้องอย่างน้อยหนึ่งคำตอบ",
        "matching.pairs_required": "คำถามจับคู่ต้องมีอย่างน้อย 2 คู่",
        "matching.pair_invalid": "คู่ที่ {number} ต้องมีข้อความทั้งฝั่งซ้ายและขวา",
        "title.required": "ชื่อข้อสอบไม่สามารถเป็นค่าว่างได้",
        "title.too_short": "ชื่อข้อสอบต้องมีความยาวอย่างน้อย 3 ตัวอักษร",
        "title.too_long": "ชื่อข้อสอบต้องไม่เกิน {max} ตัวอักษร",
        "title.charset": "ชื่อข้อสอบมีตัวอักษรที่ไม่ถูกต้อง",
        "topic.too_long": "หัวข้อต้องไม่เกิน {max} ตัวอักษร",
        "description.too_long": "คำอธิบายต้องไม่เกิน {max} ตัวอักษร",
        "category.invalid": "หมวดหมู่ไม่ถูกต้อง: {value}",
        "question_type.invalid": "ประเภทคำถามไม่ถูกต้อง: {value}",
        "difficulty.invalid": "ระดับความยากไม่ถูกต้อง: {value}",
        "status.invalid": "สถานะไม่ถูกต้อง: {value}",
        "time_limit.range": "เวลาในการทำข้อสอบต้องอยู่ระหว่าง {min}-{max} นาที",
        "user_id.required": "ต้องระบุ User ID",
        "questions.not_list": "คำถามต้องเป็น array",
        "questions.too_few": "ต้องมีอย่างน้อย {min} คำถาม",
        "questions.too_many": "จำนวนคำถามมากเกินไป: ต้องไม่เกิน {max} ข้อ",
        "v.text_invalid": "คำถามที่ {number}: ข้อความคำถามไม่ถูกต้อง",
        "v.text_empty": "คำถามที่ {number}: ข้อความคำถามไม่สามารถเป็นค่าว่างได้",
        "v.text_too_long": "คำถามที่ {number}: ข้อความคำถามยาวเกินไป (สูงสุด {max} ตัวอักษร)",
        "v.text_charset": "คำถามที่ {number}: ข้อความคำถามมีตัวอักษรที่ไม่ถูกต้อง",
        "v.type_invalid": "คำถามที่ {number}: ประเภทคำถามไม่ถูกต้อง",
        "v.explanation_too_long": "คำถามที่ {number}: คำอธิบายยาวเกินไป (สูงสุด {max} ตัวอักษร)",
        "v.points_range": "คำถามที่ {number}: คะแนนต้องอยู่ระหว่าง {min}-{max}",
        "v.difficulty_invalid": "คำถามที่ {number}: ระดับความยากไม่ถูกต้อง",
        "v.duplicate": "คำถามที่ {number}: ซ้ำกับคำถามอื่น",
        "options.too_many": "คำถามที่ {number}: จำนวนตัวเลือกต้องไม่เกิน {max} ตัว",
        "option.invalid": "คำถามที่ {number}: ตัวเลือกที่ {option} ไม่ถูกต้อง",
        "option.too_long": "คำถามที่ {number}: ตัวเลือกที่ {option} ยาวเกินไป (สูงสุด {max} ตัวอักษร)",
        "options.duplicate": "คำถามที่ {number}: ตัวเลือกซ้ำกัน",
        "options.not_list": "คำถามที่ {number}: ตัวเลือกต้องเป็น array",
        "options.too_few": "คำถามที่ {number}: ต้องมีตัวเลือกอย่างน้อย {min} ตัว",
        "validation.failed": "ข้อมูลข้อสอบไม่ถูกต้อง",
        "validation.update_failed": "ข้อมูลการอัพเดทไม่ถูกต้อง",
        "tags.not_list": "Tags ต้องเป็น array",
        "tags.too_many": "จำนวน tags ต้องไม่เกิน {max} รายการ",
        "tag.not_string": "Tag ที่ {number}: ต้องเป็น string",
        "tag.too_long": "Tag ที่ {number}: ความยาวต้องไม่เกิน {max} ตัวอักษร",
        "settings.not_object": "Settings ต้องเป็น object",
        "is_public.not_bool": "isPublic ต้องเป็น boolean",
        "folder_id.invalid": "Folder ID ต้องเป็นจำนวนเต็มบวก",
        "business.published_no_questions": "ข้อสอบที่เผยแพร่แล้วต้องมีคำถาม",
        "business.public_no_description": "ข้อสอบสาธารณะต้องมีคำอธิบาย",
        "business.public_draft": "ข้อสอบสาธารณะต้องไม่อยู่ในสถานะ draft",
        "business.mc_min_options": "คำถามปรนัยที่ {number}: ต้องมีตัวเลือกอย่างน้อย 2 ตัว",
        "business.tf_two_options": "คำถามถูก/ผิดที่ {number}: ต้องมีตัวเลือกเพียง 2 ตัว",
        "quality.low_variety": "คำถามขาดความหลากหลายในรูปแบบ",
        "quality.low_variety.fix": "ควรเพิ่มคำถามในรูปแบบที่แตกต่างกัน",
        "quality.difficulty_imbalance": "การกระจายของระดับความยากไม่สมดุล",
        "quality.difficulty_imbalance.fix": "ควรปรับให้มีคำถามในระดับความยากที่หลากหลาย",
        "quality.length_inconsistent": "ความยาวของคำถามไม่สม่ำเสมอ",
        "quality.length_inconsistent.fix": "ควรปรับความยาวของคำถามให้สม่ำเสมอกัน",
        "quality.answer_bias": "การกระจายของคำตอบถูกไม่สมดุล",
        "quality.answer_bias.fix": "ควรกระจายคำตอบถูกให้เท่าๆ กันในแต่ละตัวเลือก",
        "publication.title_short": "ชื่อข้อสอบต้องมีความยาวอย่างน้อย {min} ตัวอักษร",
        "publication.description_short": "คำอธิบายข้อสอบต้องมีความยาวอย่างน้อย {min} ตัวอักษร",
        "publication.too_few_questions": "ข้อสอบต้องมีอย่างน้อย {min} คำถาม",
        "publication.no_time_limit": "ข้อสอบต้องมีการกำหนดเวลาทำ",
        "publication.explanations": "ข้อสอบควรมีคำอธิบายอย่างน้อย {percent}% ของคำถาม",
        "regen.invalid_indices": "ลำดับคำถามไม่ถูกต้อง: {indices}",
        "regen.count_mismatch": "ต้องการคำถามใหม่ {expected} ข้อ แต่ได้รับ {received} ข้อ",
        "regen.duplicate": "คำถามใหม่ที่ {number} ซ้ำกับคำถามที่มีอยู่แล้ว",
        "estimate.large_quiz": "ควรแบ่งข้อสอบขนาดใหญ่ออกเป็นส่วนย่อยเพื่อประสบการณ์ที่ดีขึ้น",
        "estimate.large_content": "เนื้อหาที่ยาวอาจทำให้ใช้เวลาสร้างข้อสอบนานขึ้น",
        "estimate.essay": "คำถามอัตนัยต้องมีเกณฑ์การให้คะแนนที่ละเอียดขึ้น",
        "estimate.hard": "คำถามระดับยากอาจใช้เวลาในการสร้างและตรวจสอบนานขึ้น",
    },
}


class MessageCatalog:
    """Formats catalog messages for one locale."""

    def __init__(self, locale: str):
        self.locale = locale

    def __call__(self, key: str, **params) -> str:
        template = MESSAGES[self.locale].get(key)
        if template is None:
            logger.debug("Message %r missing for locale %r, using English", key, self.locale)
            template = MESSAGES["en"][key]
        return template.format(**params)

    def __repr__(self) -> str:
        return f"MessageCatalog({self.locale!r})"


def resolve_locale(locale: Optional[str]) -> str:
    """Return a supported locale, defaulting to the configured language."""
    if locale:
        candidate = str(locale).strip().lower()
        if candidate in SUPPORTED_LANGUAGES:
            return candidate
        logger.warning("Unsupported locale %r, using %r", locale, settings.DEFAULT_LANGUAGE)
    return settings.DEFAULT_LANGUAGE


@lru_cache(maxsize=8)
def get_catalog(locale: Optional[str] = None) -> MessageCatalog:
    """Cached catalog for *locale*."""
    return MessageCatalog(resolve_locale(locale))
