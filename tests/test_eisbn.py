from bookscrapper.sites.eisbn import convert_onix_to_book, reverse_contributor_name


def _onix_record(**overrides):
    record = {
        "RecordReference": "pl-eisbn-1667470",
        "NotificationType": "03",
        "ProductIdentifier": {"ProductIDType": "15", "IDValue": "9788394289607"},
        "DescriptiveDetail": {
            "ProductForm": "BC",
            "TitleDetail": {
                "TitleType": "01",
                "TitleElement": {"TitleElementLevel": "01", "TitleText": "Modlitewnik"},
            },
            "Contributor": {
                "SequenceNumber": "1",
                "ContributorRole": "A01",
                "PersonNameInverted": "Borowiak, Piotr",
            },
            "Language": {"LanguageRole": "01", "LanguageCode": "pol"},
            "Extent": {"ExtentType": "11", "ExtentValue": "103", "ExtentUnit": "03"},
        },
        "CollateralDetail": {
            "TextContent": {
                "TextType": "03",
                "ContentAudience": "00",
                "Text": "Modlitewnik to efekt wnikliwych obserwacji.",
            },
        },
        "PublishingDetail": {
            "Publisher": {"PublishingRole": "01", "PublisherName": "Piotr Borowiak"},
            "CityOfPublication": "Gliwice",
            "PublishingDate": {"PublishingDateRole": "09", "Date": "20151211"},
        },
    }
    record.update(overrides)
    return record


def test_onix_record_maps_to_book_with_release():
    book = convert_onix_to_book(_onix_record())

    assert book.title == "Modlitewnik"
    assert [author.name for author in book.authors] == ["Piotr Borowiak"]

    release = book.releases[0]
    assert release.isbn == "9788394289607"
    assert release.lang == "pl"
    assert release.total_pages == 103
    assert release.description == "Modlitewnik to efekt wnikliwych obserwacji."
    assert release.publish_date == "2015-12-11"
    assert release.publisher.name == "Piotr Borowiak"


def test_onix_without_contributor_or_title_is_skipped():
    record = _onix_record()
    record["DescriptiveDetail"] = dict(record["DescriptiveDetail"], Contributor=None)
    assert convert_onix_to_book(record) is None

    record = _onix_record()
    record["DescriptiveDetail"] = dict(record["DescriptiveDetail"], TitleDetail=None)
    assert convert_onix_to_book(record) is None


def test_onix_multiple_contributors_keep_authors_in_sequence():
    record = _onix_record()
    record["DescriptiveDetail"] = dict(
        record["DescriptiveDetail"],
        Contributor=[
            {"SequenceNumber": "3", "ContributorRole": "B06", "PersonNameInverted": "Marszał, Marek"},
            {"SequenceNumber": "2", "ContributorRole": "A01", "PersonNameInverted": "Herbert, Brian"},
            {"SequenceNumber": "1", "ContributorRole": "A01", "PersonNameInverted": "Herbert, Frank"},
        ],
    )

    book = convert_onix_to_book(record)

    assert [author.name for author in book.authors] == ["Frank Herbert", "Brian Herbert"]


def test_onix_bad_date_is_dropped():
    record = _onix_record(PublishingDetail={"PublishingDate": {"Date": "2015"}})

    release = convert_onix_to_book(record).releases[0]

    assert release.publish_date is None
    assert release.publisher is None


def test_reverse_contributor_name():
    assert reverse_contributor_name("Lem, Stanisław") == "Stanisław Lem"
    assert reverse_contributor_name("Homer") == "Homer"
    assert reverse_contributor_name(" ") is None
