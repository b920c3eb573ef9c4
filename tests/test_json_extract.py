from trailplan.tools.json_extract import ParseFailure, extract_json_payload


def test_plain_json_object():
    assert extract_json_payload('{"days": []}') == {"days": []}


def test_object_wrapped_in_prose_and_code_fence():
    text = 'Here you go!\n```json\n{"days": [{"day": 1}]}\n```\nHave fun.'
    assert extract_json_payload(text) == {"days": [{"day": 1}]}


def test_braces_inside_strings_do_not_end_the_span():
    text = 'Plan: {"name": "Café {Le Dôme}", "note": "say \\"}\\" twice"} and {"other": 1}'
    assert extract_json_payload(text) == {"name": "Café {Le Dôme}", "note": 'say "}" twice'}


def test_only_first_balanced_object_is_used():
    text = 'first {"a": 1} second {"b": 2}'
    assert extract_json_payload(text) == {"a": 1}


def test_unbalanced_object_is_a_parse_failure():
    result = extract_json_payload('The route is {"days": [ ... and then I stopped')
    assert isinstance(result, ParseFailure)


def test_text_without_object_is_a_parse_failure():
    result = extract_json_payload("Sorry, I cannot plan that trip.")
    assert isinstance(result, ParseFailure)
    assert "no balanced" in result.reason


def test_balanced_but_invalid_json_is_a_parse_failure():
    result = extract_json_payload("prefix {days: [1, 2]} suffix")
    assert isinstance(result, ParseFailure)


def test_top_level_array_is_rejected():
    result = extract_json_payload('[{"day": 1}]')
    assert isinstance(result, ParseFailure)


def test_empty_and_missing_text():
    assert isinstance(extract_json_payload(""), ParseFailure)
    assert isinstance(extract_json_payload("   "), ParseFailure)
    assert isinstance(extract_json_payload(None), ParseFailure)
