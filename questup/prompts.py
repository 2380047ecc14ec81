"""Prompt templates for exam generation and result analysis.

Prompts are written in Thai for a Thai curriculum audience. Whatever language
the exam itself is requested in, explanations and topics are always Thai.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from .models import OPTIONS_PER_QUESTION, Grade, Language

# System instruction shared by all generation calls
SYSTEM_INSTRUCTION = """คุณคือผู้เชี่ยวชาญด้านหลักสูตรการศึกษาขั้นพื้นฐานของไทย (สพฐ.) และเป็นผู้ออกข้อสอบที่มีประสบการณ์
คุณออกข้อสอบแบบเลือกตอบที่ถูกต้องตามเนื้อหา มีคำตอบที่ถูกเพียงข้อเดียว และตัวลวงที่สมเหตุสมผล"""

# Targeting directive when no weak topics are given
GENERAL_TARGETING = "สร้างข้อสอบเก็งแนวสำหรับนักเรียนรายบุคคล โดยใช้เนื้อหาจากไฟล์แนบโดยรวม"

# Targeting directive prefix for weak-topic follow-up exams
WEAK_TOPIC_TARGETING = "เน้นประเด็นที่นักเรียนยังไม่เข้าใจ (Weak topics): {topics}"

# Language of question and option text
LANGUAGE_INSTRUCTIONS: Dict[Language, str] = {
    Language.THAI: "ภาษาของโจทย์และตัวเลือก: ภาษาไทย (Thai)",
    Language.ENGLISH: "ภาษาของโจทย์และตัวเลือก: ภาษาอังกฤษ (English)",
}

# Fixed rule: explanation and topic are Thai regardless of exam language
THAI_EXPLANATION_RULE = (
    "เฉลย (explanation) และหัวข้อ (topic) ต้องเขียนเป็นภาษาไทยเสมอ "
    "ไม่ว่าข้อสอบจะเป็นภาษาใดก็ตาม "
    "(The explanation and topic fields MUST always be written in Thai, "
    "regardless of the exam language.)"
)


def build_exam_prompt(
    grade: Grade,
    language: Language,
    count: int,
    weak_topics: Optional[Sequence[str]] = None,
) -> str:
    """Build the instruction text for an exam generation request.

    Args:
        grade: Target grade
        language: Language of question and option text
        count: Number of questions to generate
        weak_topics: Topics to prioritize; empty or None for a general exam

    Returns:
        Complete prompt string for the model
    """
    if weak_topics:
        targeting = WEAK_TOPIC_TARGETING.format(topics=", ".join(weak_topics))
    else:
        targeting = GENERAL_TARGETING

    prompt = f"""ระดับชั้น: {grade.value} ({grade.thai_label})
ภารกิจ: {targeting}
{LANGUAGE_INSTRUCTIONS[language]}
จำนวนข้อ: {count}

คำแนะนำพิเศษ:
- วิเคราะห์ไฟล์แนบอย่างละเอียด และออกข้อสอบให้ตรงกับเนื้อหาในไฟล์แนบ
- ความยากเหมาะสมกับนักเรียนชั้น {grade.value}
- ออกข้อสอบแบบเลือกตอบ {OPTIONS_PER_QUESTION} ตัวเลือก มีคำตอบที่ถูกเพียงข้อเดียว
- correctIndex คือตำแหน่งของคำตอบที่ถูก (เริ่มนับจาก 0)
- {THAI_EXPLANATION_RULE}
- เฉลยต้องเข้าใจง่ายสำหรับเด็กชั้น {grade.value}
- สร้างข้อสอบจำนวน {count} ข้อพอดี
- กลับค่าเป็น JSON Array เท่านั้น"""

    return prompt.strip()


def build_analysis_prompt(history: List[Dict[str, Any]]) -> str:
    """Build the instruction text for analyzing a finished exam.

    Args:
        history: One ``{"topic": ..., "correct": ...}`` entry per question

    Returns:
        Complete prompt string for the model
    """
    prompt = f"""วิเคราะห์ผลสอบชุดนี้: {json.dumps(history, ensure_ascii=False)}
1. สรุปภาพรวมใน 1-2 ประโยค (summary) เป็นภาษาไทย
2. บอกจุดแข็ง (strengths) เป็นหัวข้อ
3. บอกจุดที่ควรปรับปรุง (weaknesses) เป็นหัวข้อ
4. ให้คำแนะนำในการอ่านหนังสือ (readingAdvice)
ทุกช่องต้องเป็นภาษาไทย กลับค่าเป็น JSON"""

    return prompt.strip()
