import json
import os

import pytest

from app.core.exceptions import FilesystemFailure, NotFound, ValidationFailure
from app.models.media import MediaKind, PropertyImage
from app.schemas.media import MediaItemIn
from app.services.media_lifecycle import MediaLifecycleManager, MoveJournal, parse_bracketed_keys
from app.services.property_service import PropertyService


def _create_with_images(service, make_upload, names):
    return service.create({
        "title": "Sukhumvit Loft",
        "images": [{"url": make_upload(name)} for name in names],
    })


def test_parse_bracketed_keys():
    nested = parse_bracketed_keys({
        "imageMetadata[tmp1][title]": "Kitchen",
        "imageMetadata[tmp1][sortOrder]": ["1", "2"],
        "imageMetadata[tmp2][isFeatured]": "true",
        "existingImageMetadata[5][title]": "ignored",
        "title": "ignored",
    }, "imageMetadata")

    assert nested == {
        "tmp1": {"title": "Kitchen", "sortOrder": "2"},
        "tmp2": {"isFeatured": "true"},
    }


def test_store_temp_upload_writes_under_temp(media, url_path):
    url = media.store_temp_upload(MediaKind.FLOOR_PLAN, "Plan A.PNG", b"png")

    assert url.startswith("/images/properties/temp/floor-plans/")
    assert url.endswith(".png")
    with open(url_path(url), "rb") as f:
        assert f.read() == b"png"


def test_url_outside_media_root_is_rejected(media):
    with pytest.raises(FilesystemFailure):
        media.url_to_path("/images/../../../etc/passwd")


def test_create_moves_temp_files_and_features_first(service, make_upload, url_path):
    temp_urls = [make_upload("a.jpg"), make_upload("b.jpg")]

    prop = service.create({"title": "Sukhumvit Loft", "images": [{"url": u} for u in temp_urls]})

    images = prop["images"]
    assert [img["url"] for img in images] == [
        f"/images/properties/{prop['id']}/a.jpg",
        f"/images/properties/{prop['id']}/b.jpg",
    ]
    assert [img["sort_order"] for img in images] == [0, 1]
    assert [img["is_featured"] for img in images] == [True, False]
    assert prop["featured_image"]["url"] == images[0]["url"]
    for temp_url, img in zip(temp_urls, images):
        assert not os.path.exists(url_path(temp_url))
        assert os.path.exists(url_path(img["url"]))


def test_plans_land_in_their_own_folders(service, make_upload, url_path):
    prop = service.create({
        "title": "Bang Na Townhouse",
        "floorPlans": [{"url": make_upload("ground.png", subdir="floor-plans"), "title": "Ground"}],
        "unitPlans": [{"url": make_upload("type-a.png", subdir="unit-plans")}],
    })

    floor_plan = prop["floor_plans"][0]
    assert floor_plan["url"] == f"/images/properties/{prop['id']}/floor-plans/ground.png"
    assert floor_plan["title"] == "Ground"
    assert "is_featured" not in floor_plan
    assert os.path.exists(url_path(prop["unit_plans"][0]["url"]))


def test_missing_temp_file_still_rewrites_url(service):
    prop = service.create({
        "title": "Phantom upload",
        "images": [{"url": "/images/properties/temp/never-uploaded.jpg"}],
    })

    assert prop["images"][0]["url"] == f"/images/properties/{prop['id']}/never-uploaded.jpg"


def test_replace_keeps_only_retained_ids(service, make_upload, url_path):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg", "3.jpg", "4.jpg"])
    ids = [img["id"] for img in prop["images"]]
    dropped = [prop["images"][0]["url"], prop["images"][2]["url"]]

    updated = service.update(prop["id"], {"replaceImages": True, "existingImages": [ids[1], ids[3]]})

    assert [img["id"] for img in updated["images"]] == [ids[1], ids[3]]
    for url in dropped:
        assert not os.path.exists(url_path(url))


def test_replace_accepts_form_encoded_id_list(service, make_upload):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg", "3.jpg"])
    ids = [img["id"] for img in prop["images"]]

    updated = service.update(prop["id"], {"replaceImages": "true", "existingImages": f"{ids[0]},{ids[2]}"})

    assert [img["id"] for img in updated["images"]] == [ids[0], ids[2]]


def test_replace_with_empty_list_deletes_everything(service, make_upload):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg"])

    updated = service.update(prop["id"], {"replaceImages": True, "existingImages": "[]"})

    assert updated["images"] == []
    assert updated["featured_image"] is None


def test_replace_without_ids_or_uploads_is_ignored(service, make_upload):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg"])

    updated = service.update(prop["id"], {"replaceImages": True})

    assert len(updated["images"]) == 2


def test_replace_without_ids_but_with_uploads_swaps_the_set(service, make_upload):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg"])
    new_url = make_upload("new.jpg")

    updated = service.update(prop["id"], {"replaceImages": True, "newImages": [{"url": new_url}]})

    assert [img["url"] for img in updated["images"]] == [f"/images/properties/{prop['id']}/new.jpg"]
    assert updated["images"][0]["is_featured"] is False


def test_new_upload_metadata_matched_by_temp_id(service, make_upload):
    prop = _create_with_images(service, make_upload, ["1.jpg"])
    new_url = make_upload("kitchen.jpg")

    updated = service.update(prop["id"], {
        "newImages": json.dumps([{"url": new_url, "tempId": "tmp1"}]),
        "imageMetadata[tmp1][title]": "Kitchen",
        "imageMetadata[tmp1][sortOrder]": "7",
    })

    kitchen = updated["images"][-1]
    assert kitchen["title"] == "Kitchen"
    assert kitchen["sort_order"] == 7
    assert len(updated["images"]) == 2


def test_delete_ids_only_touch_own_assets(service, make_upload):
    first = _create_with_images(service, make_upload, ["a.jpg", "b.jpg"])
    second = _create_with_images(service, make_upload, ["c.jpg"])
    foreign_id = second["images"][0]["id"]

    updated = service.update(first["id"], {"deleteImages": [first["images"][1]["id"], foreign_id]})

    assert [img["id"] for img in updated["images"]] == [first["images"][0]["id"]]
    assert len(service.find_by_id_for_admin(second["id"])["images"]) == 1


def test_existing_metadata_patches_rows_only(service, make_upload, url_path):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg"])
    second = prop["images"][1]

    updated = service.update(prop["id"], {
        "existingImageMetadata": {str(second["id"]): {"title": "Pool deck", "isFeatured": True, "sortOrder": None}},
    })

    patched = next(img for img in updated["images"] if img["id"] == second["id"])
    assert patched["title"] == "Pool deck"
    assert patched["is_featured"] is True
    assert patched["sort_order"] == 1
    assert patched["url"] == second["url"]
    assert os.path.exists(url_path(second["url"]))


def test_files_kept_when_deletion_disabled(db, media_root, make_upload, url_path):
    service = PropertyService(db, media=MediaLifecycleManager(db, media_root=media_root, delete_files=False))
    prop = _create_with_images(service, make_upload, ["keep.jpg"])
    url = prop["images"][0]["url"]

    updated = service.update(prop["id"], {"replaceImages": True, "existingImages": []})

    assert updated["images"] == []
    assert os.path.exists(url_path(url))


def test_revert_moves_puts_files_back(service, media, make_upload, url_path, db):
    prop = service.create({"title": "Revert me"})
    temp_url = make_upload("undo.jpg")
    journal = MoveJournal()

    rows = media.promote(prop["id"], MediaKind.IMAGE, [MediaItemIn(url=temp_url)], journal)
    final_url = rows[0].url

    assert len(journal) == 1
    assert os.path.exists(url_path(final_url))

    assert media.revert_moves(journal) == 1
    db.rollback()
    assert os.path.exists(url_path(temp_url))
    assert not os.path.exists(url_path(final_url))
    assert len(journal) == 0
    assert db.query(PropertyImage).count() == 0


def test_replace_keeps_retained_ids_and_adds_uploads(service, make_upload, url_path):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg", "3.jpg", "4.jpg"])
    ids = [img["id"] for img in prop["images"]]
    new_url = make_upload("garden.jpg")

    updated = service.update(prop["id"], {
        "replaceImages": True,
        "existingImages": [ids[1], ids[3]],
        "newImages": [{"url": new_url}],
    })

    images = updated["images"]
    added = [img for img in images if img["id"] not in ids]
    assert len(images) == 3
    assert len(added) == 1
    assert {img["id"] for img in images} == {ids[1], ids[3], added[0]["id"]}
    assert added[0]["url"] == f"/images/properties/{prop['id']}/garden.jpg"
    assert os.path.exists(url_path(added[0]["url"]))
    assert not os.path.exists(url_path(prop["images"][0]["url"]))


def test_add_media_appends_after_existing(service, make_upload, url_path):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg"])

    asset = service.add_media(prop["id"], MediaKind.IMAGE, {"url": make_upload("3.jpg"), "title": "Terrace"})

    assert asset["property_id"] == prop["id"]
    assert asset["url"] == f"/images/properties/{prop['id']}/3.jpg"
    assert asset["title"] == "Terrace"
    assert asset["sort_order"] == 2
    assert asset["is_featured"] is False
    assert os.path.exists(url_path(asset["url"]))
    assert len(service.find_by_id_for_admin(prop["id"])["images"]) == 3


def test_add_media_to_property_without_images_features_it(service, make_upload):
    prop = service.create({"title": "Empty gallery"})

    image = service.add_media(prop["id"], MediaKind.IMAGE, {"url": make_upload("first.jpg")})
    plan = service.add_media(
        prop["id"], MediaKind.FLOOR_PLAN, {"url": make_upload("ground.png", subdir="floor-plans")}
    )

    assert image["is_featured"] is True
    assert service.find_by_id_for_admin(prop["id"])["featured_image"]["id"] == image["id"]
    assert plan["url"] == f"/images/properties/{prop['id']}/floor-plans/ground.png"
    assert "is_featured" not in plan


def test_add_media_rejects_missing_property_and_bad_payload(service, make_upload, url_path):
    temp_url = make_upload("orphan.jpg")
    deleted = service.create({"title": "Gone"})
    service.soft_delete(deleted["id"])

    with pytest.raises(NotFound):
        service.add_media(999, MediaKind.IMAGE, {"url": temp_url})
    with pytest.raises(NotFound):
        service.add_media(deleted["id"], MediaKind.IMAGE, {"url": temp_url})
    with pytest.raises(ValidationFailure):
        service.add_media(deleted["id"], MediaKind.IMAGE, {"title": "no url"})
    assert os.path.exists(url_path(temp_url))


def test_delete_media_removes_row_and_file(service, make_upload, url_path, db):
    prop = _create_with_images(service, make_upload, ["1.jpg", "2.jpg"])
    doomed = prop["images"][1]

    result = service.delete_media(MediaKind.IMAGE, doomed["id"])

    assert result == {"id": doomed["id"], "kind": "image", "property_id": prop["id"]}
    assert db.get(PropertyImage, doomed["id"]) is None
    assert not os.path.exists(url_path(doomed["url"]))
    assert [img["id"] for img in service.find_by_id_for_admin(prop["id"])["images"]] == [prop["images"][0]["id"]]


def test_delete_media_unknown_or_foreign_is_not_found(service, make_upload):
    first = _create_with_images(service, make_upload, ["a.jpg"])
    second = _create_with_images(service, make_upload, ["b.jpg"])
    foreign_id = second["images"][0]["id"]

    with pytest.raises(NotFound, match="Image with ID 999 not found"):
        service.delete_media(MediaKind.IMAGE, 999)
    with pytest.raises(NotFound):
        service.delete_media(MediaKind.IMAGE, foreign_id, property_id=first["id"])
    with pytest.raises(NotFound):
        service.delete_media(MediaKind.FLOOR_PLAN, foreign_id)
    assert len(service.find_by_id_for_admin(second["id"])["images"]) == 1


def test_delete_media_keeps_file_when_deletion_disabled(db, media_root, make_upload, url_path):
    service = PropertyService(db, media=MediaLifecycleManager(db, media_root=media_root, delete_files=False))
    prop = _create_with_images(service, make_upload, ["keep.jpg"])
    image = prop["images"][0]

    service.delete_media(MediaKind.IMAGE, image["id"])

    assert db.get(PropertyImage, image["id"]) is None
    assert os.path.exists(url_path(image["url"]))
