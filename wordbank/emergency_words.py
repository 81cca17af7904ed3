"""
Emergency word pool for when every model provider is unavailable.
Each entry is a pre-vetted record in the same shape the parser produces.
"""

from typing import Dict, List

from .models import CandidateRecord

EMERGENCY_SOURCE_TAG = "Emergency-Pool"

EMERGENCY_WORDS: List[Dict] = [
    {
        "word": "müstesna",
        "definition": "Ayrık, ayrıcalıklı, seçkin.",
        "example_sentence": "Bu müstesna durumda size yardımcı olabilirim.",
        "category": "edebiyat",
        "synonyms": ["ayrıcalıklı", "seçkin"],
        "antonyms": ["sıradan", "alelade"],
    },
    {
        "word": "müşkül",
        "definition": "Güç, zorluk, zor, güç bir durum.",
        "example_sentence": "Bu müşkül durumdan nasıl çıkacağımı bilmiyorum.",
        "category": "edebiyat",
        "synonyms": ["zor", "çetin"],
        "antonyms": ["kolay", "basit"],
    },
    {
        "word": "mütemadiyen",
        "definition": "Sürekli olarak, durmadan, aralıksız.",
        "example_sentence": "Son günlerde mütemadiyen yağmur yağıyor.",
        "category": "edebiyat",
        "synonyms": ["sürekli", "devamlı"],
        "antonyms": ["ara sıra", "kesintili"],
    },
    {
        "word": "mütevekkil",
        "definition": "Her şeyi Allah'tan bilen, kadere inanmış.",
        "example_sentence": "Mütevekkil bir tavırla sonucu bekliyordu.",
        "category": "felsefe",
        "synonyms": ["teslimiyetçi", "kaderci"],
        "antonyms": ["isyankâr", "asi"],
    },
    {
        "word": "mücbir",
        "definition": "Zorlayıcı, zorunlu kılan, mecbur eden.",
        "example_sentence": "Mücbir sebepler nedeniyle uçuş iptal edildi.",
        "category": "hukuk",
        "synonyms": ["zorlayıcı", "kaçınılmaz"],
        "antonyms": ["isteğe bağlı", "ihtiyari"],
    },
    {
        "word": "münferit",
        "definition": "Ayrı, tek, yalnız, bağımsız.",
        "example_sentence": "Bu münferit olay bizi endişelendirmemeli.",
        "category": "edebiyat",
        "synonyms": ["tek", "biricik"],
        "antonyms": ["toplu", "birleşik"],
    },
    {
        "word": "mütevazı",
        "definition": "Alçakgönüllü, gösterişsiz, iddiasız.",
        "example_sentence": "Mütevazı bir evde yaşamayı tercih ediyordu.",
        "category": "psikoloji",
        "synonyms": ["alçakgönüllü", "gösterişsiz"],
        "antonyms": ["kibirli", "gösterişli"],
    },
    {
        "word": "müştak",
        "definition": "Özleyen, hasretle bekleyen, arzulayan.",
        "example_sentence": "Seni görmeye müştak gözlerle bekliyordu.",
        "category": "edebiyat",
        "synonyms": ["özlem duyan", "hasret çeken"],
        "antonyms": ["bıkmış", "bezmiş"],
    },
    {
        "word": "müsrif",
        "definition": "Savurgan, tutumsuz, israf eden.",
        "example_sentence": "Müsrif davranışları nedeniyle tüm servetini kaybetti.",
        "category": "ekonomi",
        "synonyms": ["savurgan", "hovarda"],
        "antonyms": ["tutumlu", "cimri"],
    },
    {
        "word": "mübrem",
        "definition": "Kaçınılmaz, çok gerekli, şart olan.",
        "example_sentence": "Bu konunun çözümü mübrem bir ihtiyaçtır.",
        "category": "edebiyat",
        "synonyms": ["zorunlu", "gerekli"],
        "antonyms": ["gereksiz", "önemsiz"],
    },
]


def get_emergency_words() -> List[CandidateRecord]:
    """Return the emergency pool as fresh CandidateRecords, in fixed order."""
    return [
        CandidateRecord(
            word=entry["word"],
            definition=entry["definition"],
            example_sentence=entry["example_sentence"],
            synonyms=tuple(entry["synonyms"]),
            antonyms=tuple(entry["antonyms"]),
            category=entry["category"],
            source_tag=EMERGENCY_SOURCE_TAG,
        )
        for entry in EMERGENCY_WORDS
    ]
