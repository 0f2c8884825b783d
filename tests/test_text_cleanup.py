from storyvoice.models import NARRATOR_NAME, Character, Script, ScriptLine, ScriptScene, VoiceCategory
from storyvoice.services.text_cleanup import (
    clean_script,
    dedupe_cast,
    ensure_narrator,
    strip_onomatopoeia,
)

def test_strip_leading_laughter():
    assert strip_onomatopoeia("Haha, das war lustig!") == "das war lustig!"

def test_strip_inline_sound_words():
    assert strip_onomatopoeia("Oh nein. Seufz. Schon wieder Regen.") == "Oh nein. Schon wieder Regen."
    assert strip_onomatopoeia("Grrr! Geh weg!") == "Geh weg!"

def test_words_containing_sounds_are_kept():
    assert strip_onomatopoeia("Die Hasen hüpfen über die Wiese.") == "Die Hasen hüpfen über die Wiese."

def test_line_made_only_of_sounds_is_left_alone():
    assert strip_onomatopoeia("Hihihi!") == "Hihihi!"

def test_clean_script_skips_narrator(fox_script):
    fox_script.scenes[0].lines[0].text = "Haha, lachte der Wind."
    changed = clean_script(fox_script)

    assert changed == 1
    assert fox_script.scenes[0].lines[0].text == "Haha, lachte der Wind."
    assert fox_script.scenes[0].lines[1].text == "die Beeren gehören mir!"

def test_clean_script_skips_narrator_category_under_another_name(fox_script):
    fox_script.characters.append(Character(name="Stimme", category=VoiceCategory.NARRATOR))
    fox_script.scenes[1].lines.append(ScriptLine(speaker="Stimme", text="Haha, so endet es."))

    changed = clean_script(fox_script)

    assert changed == 1
    assert fox_script.scenes[1].lines[-1].text == "Haha, so endet es."

def test_dedupe_cast_keeps_first_entry(fox_script):
    fox_script.characters.append(Character(name="Fuchs", category=VoiceCategory.CHILD_MALE))
    fox_script.characters.append(Character(name="Hase", category=VoiceCategory.ELDER_FEMALE))

    assert dedupe_cast(fox_script) == 2
    assert [(c.name, c.category) for c in fox_script.characters] == [
        ("Fuchs", VoiceCategory.ADULT_MALE),
        ("Hase", VoiceCategory.CHILD_FEMALE),
    ]
    assert dedupe_cast(fox_script) == 0

def test_ensure_narrator_inserts_once(fox_script):
    assert ensure_narrator(fox_script) is True
    assert fox_script.characters[0].name == NARRATOR_NAME
    assert fox_script.characters[0].category is VoiceCategory.NARRATOR

    assert ensure_narrator(fox_script) is False
    assert [c.name for c in fox_script.characters].count(NARRATOR_NAME) == 1

def test_ensure_narrator_keeps_existing_entry():
    script = Script(
        title="t",
        characters=[Character(name="Max"), Character(name=NARRATOR_NAME, traits=["warm"])],
        scenes=[ScriptScene(lines=[ScriptLine(speaker="Max", text="Hallo")])],
    )
    assert ensure_narrator(script) is False
    assert script.characters[1].traits == ["warm"]
