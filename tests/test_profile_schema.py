"""Unit tests for the Profile and SwipeAction value objects."""
import pytest
from pydantic import ValidationError

from swipefeed.schemas.profile import Profile, SwipeAction, SwipeDirection


class TestProfilePhotos:
    """Photos default to the cover image when none are supplied."""

    def test_empty_photos_fall_back_to_image(self):
        profile = Profile(name="Ana", age=27, bio="", distance=1, image_url="https://img/1")
        assert profile.photos == ("https://img/1",)

    def test_explicit_empty_list_falls_back_to_image(self):
        profile = Profile(
            name="Ana", age=27, bio="", distance=1, image_url="https://img/1", photos=[]
        )
        assert profile.photos == ("https://img/1",)

    def test_supplied_photos_preserved_in_order(self):
        photos = ["https://img/3", "https://img/1", "https://img/2"]
        profile = Profile(
            name="Ana", age=27, bio="", distance=1, image_url="https://img/1", photos=photos
        )
        assert list(profile.photos) == photos


class TestProfileValidation:

    def test_defaults(self):
        profile = Profile(name="Ana", age=27, bio="Hi", distance=0, image_url="u")
        assert profile.id
        assert profile.occupation == ""
        assert profile.education == ""
        assert profile.looking_for == ""
        assert profile.interests == ()

    def test_generated_ids_are_unique(self):
        a = Profile(name="Ana", age=27, bio="", distance=0, image_url="u")
        b = Profile(name="Ana", age=27, bio="", distance=0, image_url="u")
        assert a.id != b.id

    def test_age_must_be_positive(self):
        with pytest.raises(ValidationError):
            Profile(name="Ana", age=0, bio="", distance=0, image_url="u")

    def test_distance_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            Profile(name="Ana", age=27, bio="", distance=-1, image_url="u")

    def test_camel_case_payload_accepted(self):
        profile = Profile.model_validate({
            "id": "p1",
            "name": "Ana",
            "age": 27,
            "bio": "",
            "lookingFor": "New friends",
            "distance": 2,
            "imageURL": "https://img/1",
        })
        assert profile.looking_for == "New friends"
        assert profile.image_url == "https://img/1"
        assert profile.photos == ("https://img/1",)

    def test_profile_is_immutable(self):
        profile = Profile(name="Ana", age=27, bio="", distance=0, image_url="u")
        with pytest.raises(ValidationError):
            profile.name = "Bea"

    def test_serialised_profile_validates_back(self):
        profile = Profile(
            name="Ana", age=27, bio="", distance=0, image_url="u", interests=["Yoga"]
        )
        assert Profile.model_validate(profile.model_dump(mode="json")) == profile


class TestSwipeAction:

    def test_defaults_are_filled(self):
        action = SwipeAction(profile_id="p1", direction="right")
        assert action.id
        assert action.direction is SwipeDirection.RIGHT
        assert action.timestamp.tzinfo is not None

    def test_unknown_direction_rejected(self):
        with pytest.raises(ValidationError):
            SwipeAction(profile_id="p1", direction="up")

    def test_action_is_immutable(self):
        action = SwipeAction(profile_id="p1", direction=SwipeDirection.LEFT)
        with pytest.raises(ValidationError):
            action.direction = SwipeDirection.RIGHT
