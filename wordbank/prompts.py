from typing import Iterable

_RECORD_SHAPE = """[
  {
    "kelime": "...",
    "tanim": "...",
    "ornek_cumle": "...",
    "es_anlamlilari": ["...", "..."],
    "zit_anlamlilari": ["...", "..."],
    "kategori": "..."
  },
  {
    "kelime": "...",
    "tanim": "...",
    "ornek_cumle": "...",
    "es_anlamlilari": ["...", "..."],
    "zit_anlamlilari": ["...", "..."],
    "kategori": "..."
  }
]"""


def build_word_prompt(count: int, categories: Iterable[str], strict_json: bool = True) -> str:
    """Build the batch prompt sent to every provider.

    The local CLI model tends to ignore "JSON only" instructions, so the
    closing sentence is only added for the remote API (strict_json=True).
    """
    category_list = ', '.join(categories)
    prompt = (
        f"Lütfen {count} tane az bilinen, çok farklı ve birbirinden benzersiz Türkçe kelime üret.\n"
        "Her bir kelime için anlamını, örnek cümlesini, varsa eş anlamlılarını, zıt anlamlılarını ve kategorisini belirt.\n"
        f"Kategori şu listeden biri olmalı: {category_list}.\n"
        "Yanıtını aşağıdaki JSON formatında ver:\n\n"
        f"{_RECORD_SHAPE}\n\n"
        "Lütfen çok nadir kullanılan, gerçek Türkçe kelimeler ver ve tüm kelimeler birbirinden tamamen farklı olsun."
    )
    if strict_json:
        prompt += "\nSadece JSON dizisi döndür, başka açıklama ekleme."
    return prompt
