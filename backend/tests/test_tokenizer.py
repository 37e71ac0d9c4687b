from investment_tracker.ingest.tokenizer import detect_delimiter, tokenize


def test_splits_rows_and_cells():
    assert tokenize("a,b\n1,2\n") == [["a", "b"], ["1", "2"]]


def test_flushes_last_row_without_newline():
    assert tokenize("a,b\n1,2") == [["a", "b"], ["1", "2"]]


def test_semicolon_wins_only_when_more_frequent():
    assert detect_delimiter("a;b;c\n1,2,3") == ";"
    assert detect_delimiter("a;b,c\n") == ","
    assert tokenize("a;b;c\n1;2,5;3") == [["a", "b", "c"], ["1", "2,5", "3"]]


def test_quoted_fields_keep_delimiters_newlines_and_escaped_quotes():
    text = 'name,note\n"Smith, J","said ""hi""\nthere"\n'

    assert tokenize(text) == [["name", "note"], ["Smith, J", 'said "hi"\nthere']]


def test_crlf_and_blank_rows_are_dropped():
    assert tokenize("a,b\r\n\r\n , \r\n1,2\r\n") == [["a", "b"], ["1", "2"]]


def test_empty_text_has_no_rows():
    assert tokenize("") == []
    assert tokenize("\n\n") == []
