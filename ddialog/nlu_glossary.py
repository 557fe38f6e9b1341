# ddialog/nlu_glossary.py
# Glosario del recognizer local (modo dev / sin LUIS).

GLOSSARY = {
    # saludos que arrancan el diálogo "greeting"
    "Greeting": ["hello", "hi", "hey", "good morning", "good evening", "hola", "buenas"],
    "Cancel":   ["cancel", "stop", "quit", "never mind", "cancelar"],
    "Help":     ["help", "ayuda", "what can you do", "?"],
}

# Entidades: el grupo nombrado `value` es lo que se extrae.
ENTITY_PATTERNS = {
    "Name": [
        r"\bmy name is\s+(?P<value>[A-Za-zÀ-ÿ][\w'-]*)",
        r"\bcall me\s+(?P<value>[A-Za-zÀ-ÿ][\w'-]*)",
        r"\bi am\s+(?P<value>[A-Za-zÀ-ÿ][\w'-]*)\s*$",
        r"\bme llamo\s+(?P<value>[A-Za-zÀ-ÿ][\w'-]*)",
    ],
    "Age": [
        r"\b(?P<value>\d{1,3})\s+(?:years?|años)\b",
    ],
}
