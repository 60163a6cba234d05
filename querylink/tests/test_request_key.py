from querylink.keys import normalize_document, operation_fingerprint, request_key
from querylink.models import Operation, OperationType, Request
from querylink.multipart import MultipartFile

QUERY = Operation(
    document="query Folder($id: ID!) { folder(id: $id) { name } }",
    operation_name="Folder",
)


def _request(variables, operation=QUERY):
    return Request(operation=operation, variables=variables)


def test_key_ignores_variable_insertion_order():
    first = _request({"id": 1, "filter": {"a": 1, "b": [1, 2]}})
    second = _request({"filter": {"b": [1, 2], "a": 1}, "id": 1})

    assert request_key(first) == request_key(second)


def test_keys_differ_for_distinct_variables():
    keys = {request_key(_request({"id": index, "page": index % 7})) for index in range(250)}
    keys |= {request_key(_request({"id": str(index)})) for index in range(250)}

    assert len(keys) == 500


def test_key_depends_on_operation():
    mutation = Operation(
        document="mutation Folder($id: ID!) { folder(id: $id) { name } }",
        operation_name="Folder",
        operation_type=OperationType.mutation,
    )

    assert request_key(_request({"id": 1})) != request_key(_request({"id": 1}, mutation))


def test_fingerprint_ignores_formatting_and_comments():
    reformatted = Operation(
        document="""
        # fetch one folder
        query Folder($id: ID!) {
          folder(id: $id) {
            name
          }
        }
        """,
        operation_name="Folder",
    )

    assert operation_fingerprint(reformatted) == operation_fingerprint(QUERY)


def test_normalize_keeps_string_literals():
    document = 'query { search(text: "a  #b,  c") { id } }'

    assert '"a  #b,  c"' in normalize_document(document)


def test_key_is_full_length_digest():
    key = request_key(_request({"id": 1}))
    fingerprint, digest = key.split(":")

    assert len(fingerprint) == 64
    assert len(digest) == 64


def test_files_are_keyed_by_identity():
    upload = MultipartFile(content=b"abc", filename="a.txt")
    same = _request({"file": upload})
    again = _request({"file": upload})
    other = _request({"file": MultipartFile(content=b"abc", filename="a.txt")})

    assert request_key(same) == request_key(again)
    assert request_key(same) != request_key(other)


def test_mixed_key_types_produce_a_key():
    key = request_key(_request({"f": {1: "a", "b": 2}}))

    assert key == request_key(_request({"f": {"b": 2, 1: "a"}}))


def test_integer_and_string_keys_stay_distinct():
    assert request_key(_request({"f": {1: "a"}})) != request_key(_request({"f": {"1": "a"}}))
