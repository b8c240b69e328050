"""Tests for overlay flag derivation."""

from entitle.pipeline.overlays import derive_overlay_flags, observations


class TestObservations:
    def test_single_dict(self):
        assert observations({"HISTORIC": "Pioneer Square", "ZONE": "PSM-85"}) == [
            ("HISTORIC", "Pioneer Square"),
            ("ZONE", "PSM-85"),
        ]

    def test_list_of_dicts_and_list_values(self):
        obs = observations([{"OVERLAY": ["SM", " IC "]}, {"OVERLAY": "SM"}])
        assert obs == [("OVERLAY", "SM"), ("OVERLAY", "IC"), ("OVERLAY", "SM")]

    def test_drops_none_and_blank(self):
        assert observations({"HISTORIC": None, "SHORELINE": "   ", "MIO": ""}) == []

    def test_empty_shapes(self):
        assert observations(None) == []
        assert observations({}) == []
        assert observations([]) == []

    def test_non_dict_members_ignored(self):
        assert observations([None, "x", {"pd_num": 3}]) == [("pd_num", "3")]


class TestSeattle:
    def test_presence_flags(self):
        props = {"HISTORIC": "Y", "SHORELINE": "UM", "LIGHTRAIL": "Capitol Hill"}
        assert derive_overlay_flags("seattle", props) == {"historic", "shoreline", "light_rail"}

    def test_value_flags(self):
        props = {"OVERLAY": "SM", "PEDESTRIAN": "P", "VILLAGE": "Ballard", "MIO": "Swedish"}
        assert derive_overlay_flags("seattle", props) == {
            "overlay:SM", "pedestrian:P", "village:Ballard", "mio:Swedish",
        }

    def test_merged_polygons_flatten(self):
        props = [{"OVERLAY": "SM"}, {"OVERLAY": "IC", "HISTORIC": "Y"}, {"OVERLAY": "SM"}]
        assert derive_overlay_flags("seattle", props) == {"overlay:SM", "overlay:IC", "historic"}

    def test_blank_presence_key_not_flagged(self):
        assert derive_overlay_flags("seattle", {"HISTORIC": "", "SHORELINE": None}) == set()

    def test_order_independent(self):
        a = [{"OVERLAY": "SM"}, {"MIO": "UW", "HISTORIC": "Y"}]
        assert derive_overlay_flags("seattle", a) == derive_overlay_flags("seattle", list(reversed(a)))


class TestChicago:
    def test_positive_pd_num(self):
        assert derive_overlay_flags("chicago", {"pd_num": 1234}) == {"planned_development"}

    def test_string_pd_num(self):
        assert derive_overlay_flags("chicago", [{"pd_num": "0"}, {"pd_num": "17"}]) == {"planned_development"}

    def test_zero_or_garbage_pd_num(self):
        assert derive_overlay_flags("chicago", {"pd_num": 0}) == set()
        assert derive_overlay_flags("chicago", {"pd_num": "n/a"}) == set()
        assert derive_overlay_flags("chicago", {"pd_num": "inf"}) == set()


class TestAustin:
    def test_overlay_values(self):
        assert derive_overlay_flags("austin", {"overlay": ["NP", "CO"]}) == {"overlay:NP", "overlay:CO"}

    def test_case_sensitive_keys(self):
        # Seattle-style upper-case key means nothing in Austin
        assert derive_overlay_flags("austin", {"OVERLAY": "NP"}) == set()


def test_unknown_city_empty():
    assert derive_overlay_flags("portland", {"HISTORIC": "Y", "overlay": "X"}) == set()
