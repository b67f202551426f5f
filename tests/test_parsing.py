from context import errors, parsing
import unittest


class TestParsing(unittest.TestCase):
    def test_get_symbols_splits_on_any_whitespace(self):
        symbols = parsing.get_symbols(' OP_DUP\tOP_HASH160\n\nabcd  OP_EQUALVERIFY ')
        assert symbols == ['OP_DUP', 'OP_HASH160', 'abcd', 'OP_EQUALVERIFY']

    def test_get_symbols_preserves_case(self):
        assert parsing.get_symbols('AbCd op_add') == ['AbCd', 'op_add']

    def test_get_symbols_returns_empty_list_for_blank_source(self):
        assert parsing.get_symbols('') == []
        assert parsing.get_symbols('   \n') == []

    def test_get_symbols_raises_ScriptSyntaxError_for_nonstr(self):
        with self.assertRaises(errors.ScriptSyntaxError) as e:
            parsing.get_symbols(b'OP_TRUE')
        assert str(e.exception) == 'script source must be str'

    def test_tokens_to_src_joins_with_single_spaces(self):
        assert parsing.tokens_to_src(['2', '3', 'OP_ADD']) == '2 3 OP_ADD'
        assert parsing.tokens_to_src([]) == ''

    def test_tokens_to_src_rejects_unrepresentable_tokens(self):
        with self.assertRaises(errors.ScriptSyntaxError):
            parsing.tokens_to_src(['two words'])
        with self.assertRaises(errors.ScriptSyntaxError):
            parsing.tokens_to_src([''])


if __name__ == '__main__':
    unittest.main()
