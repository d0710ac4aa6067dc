"""Unit tests for folio.hobbies."""

import base64

from folio.hobbies import (
    add_hobby_image,
    default_gallery,
    ensure_hobbies,
    get_hobby,
    hobby_slug,
    remove_hobby_image,
    update_hobby_caption,
)


class TestSlugAndGallery:
    def test_slug(self):
        assert hobby_slug("Board Games & Puzzles") == "board-games-puzzles"
        assert hobby_slug("  Photography ") == "photography"

    def test_non_ascii_name_gets_stable_fallback_slug(self):
        slug = hobby_slug("写真")
        assert slug.startswith("hobby-") and len(slug) > len("hobby-")
        assert slug == hobby_slug(" 写真 ")
        assert slug != hobby_slug("日本")
        assert hobby_slug("!!!").startswith("hobby-")

    def test_default_gallery_is_deterministic(self):
        gallery = default_gallery("Photography")
        assert gallery == default_gallery("Photography")
        assert len(gallery) == 3
        assert gallery[0]["src"].startswith("https://picsum.photos/seed/Photography-1/")
        assert gallery[2]["caption"] == "Moments of Photography 3"


class TestEnsureHobbies:
    def test_seeds_missing_records(self, store, site):
        hobbies = ensure_hobbies(store, site.hobbies)
        assert [h["slug"] for h in hobbies] == ["photography", "board-games"]
        assert get_hobby(store, "photography")["description"] == "Light."

    def test_keeps_existing_records(self, store, site):
        store.set("hobbies", {"slug": "photography", "name": "Photography", "gallery": []})
        hobbies = ensure_hobbies(store, site.hobbies)
        assert hobbies[0]["gallery"] == []

    def test_non_ascii_names_are_seeded(self, store):
        hobbies = ensure_hobbies(store, [{"name": "写真"}, {"name": "日本"}])
        assert len({h["slug"] for h in hobbies}) == 2
        for hobby in hobbies:
            assert get_hobby(store, hobby["slug"])["name"] == hobby["name"]
        assert len(hobbies[0]["gallery"]) == 3

    def test_skips_nameless_entries(self, store):
        assert ensure_hobbies(store, [{"name": " "}, {}]) == []


class TestGalleryEdits:
    def test_caption_update(self, store, site):
        ensure_hobbies(store, site.hobbies)
        image_id = get_hobby(store, "photography")["gallery"][1]["id"]
        hobby = update_hobby_caption(store, "photography", image_id, "Golden hour")
        assert hobby["gallery"][1]["caption"] == "Golden hour"
        assert get_hobby(store, "photography")["gallery"][1]["caption"] == "Golden hour"

    def test_add_image_prepends_data_url(self, store, site):
        ensure_hobbies(store, site.hobbies)
        hobby = add_hobby_image(store, "photography", b"\x89PNG", mime_type="image/png")
        first = hobby["gallery"][0]
        assert first["src"] == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()
        assert first["caption"] == "New image"
        assert len(hobby["gallery"]) == 4

    def test_remove_image(self, store, site):
        ensure_hobbies(store, site.hobbies)
        image_id = get_hobby(store, "photography")["gallery"][0]["id"]
        hobby = remove_hobby_image(store, "photography", image_id)
        assert image_id not in [img["id"] for img in hobby["gallery"]]

    def test_unknown_hobby(self, store):
        assert update_hobby_caption(store, "nope", "1", "x") is None
        assert add_hobby_image(store, "nope", b"") is None
        assert remove_hobby_image(store, "nope", "1") is None
