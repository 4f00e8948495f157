from services.address_search.placemark import PlacemarkRecord, format_placemark
from services.address_search.accumulator import ResultAccumulator


def test_format_name_and_locality():
    record = PlacemarkRecord(name="A", locality="B")
    assert format_placemark(record) == "name[A] locality[B]"


def test_format_all_fields_in_fixed_order():
    record = PlacemarkRecord(
        sub_thoroughfare="1",
        thoroughfare="Apple Park Way",
        sub_locality="Pruneridge",
        locality="Cupertino",
        sub_administrative_area="Santa Clara",
        administrative_area="CA",
        country="United States",
        name="Apple Park",
    )
    assert format_placemark(record) == (
        "name[Apple Park] country[United States] administrativeArea[CA] "
        "subAdministrativeArea[Santa Clara] locality[Cupertino] "
        "subLocality[Pruneridge] thoroughfare[Apple Park Way] subThoroughfare[1]"
    )


def test_format_without_name_has_no_leading_space():
    assert format_placemark(PlacemarkRecord(country="Japan")) == "country[Japan]"


def test_format_empty_record():
    assert format_placemark(PlacemarkRecord()) == ""


def test_brackets_are_not_escaped():
    assert format_placemark(PlacemarkRecord(name="a]b")) == "name[a]b]"


def test_empty_strings_normalize_to_absent():
    record = PlacemarkRecord(name="", locality="Tokyo")
    assert record.name is None
    assert record.text == "locality[Tokyo]"


def test_coordinates_do_not_affect_equality_or_text():
    a = PlacemarkRecord(name="X", latitude=1.0, longitude=2.0)
    b = PlacemarkRecord(name="X", latitude=3.0, longitude=4.0)
    assert a == b
    assert a.text == b.text


def test_from_dict_ignores_unknown_keys():
    record = PlacemarkRecord.from_dict({"name": "X", "postal_code": "123"})
    assert record == PlacemarkRecord(name="X")


def test_try_append_rejects_duplicate_text():
    acc = ResultAccumulator("postal_address")
    first = PlacemarkRecord(name="A", locality="B", latitude=1.0)
    dup = PlacemarkRecord(name="A", locality="B", latitude=9.0)

    assert acc.try_append(first) is True
    assert acc.try_append(dup) is False
    assert acc.items() == (first,)
    assert acc.items()[0].latitude == 1.0


def test_try_append_keeps_insertion_order():
    acc = ResultAccumulator()
    records = [PlacemarkRecord(name=n) for n in ("c", "a", "b")]
    for r in records:
        assert acc.try_append(r)
    assert list(acc) == records
    assert len(acc) == 3


def test_clear_resets_dedup_keys():
    acc = ResultAccumulator()
    acc.try_append(PlacemarkRecord(name="A"))
    acc.clear()
    assert acc.items() == ()
    assert acc.try_append(PlacemarkRecord(name="A")) is True


def test_extend_keeps_duplicates():
    acc = ResultAccumulator("region_search")
    acc.extend([PlacemarkRecord(name="A"), PlacemarkRecord(name="A")])
    assert len(acc) == 2
    assert acc.try_append(PlacemarkRecord(name="A")) is False
