from context import classes, errors, interfaces
import unittest


class TestStack(unittest.TestCase):
    def test_Stack_implements_StackProtocol(self):
        assert isinstance(classes.Stack(), interfaces.StackProtocol)

    def test_pushing_nonstr_onto_Stack_raises_TypeError(self):
        stack = classes.Stack()
        with self.assertRaises(TypeError) as e:
            stack.push(b'not str')
        assert str(e.exception) == 'Stack item must be str'

    def test_Stack_push_and_pop_use_LIFO_order(self):
        stack = classes.Stack()
        items = [str(i) for i in range(10)]
        for item in items:
            stack.push(item)
        assert stack.pop() == items[-1]
        last = stack.pop()
        while len(stack):
            last = stack.pop()
        assert last == items[0]

    def test_Stack_pop_raises_StackUnderflow_when_empty(self):
        stack = classes.Stack()
        with self.assertRaises(errors.StackUnderflow):
            stack.pop()

    def test_Stack_pop_int_parses_and_consumes_the_value(self):
        stack = classes.Stack()
        stack.push('-42')
        assert stack.pop_int() == -42
        assert stack.size() == 0

        stack.push('1')
        stack.push('suchValue')
        with self.assertRaises(errors.NotANumber):
            stack.pop_int()
        assert stack.snapshot() == ('1',)

    def test_Stack_size_returns_item_count(self):
        stack = classes.Stack()
        assert stack.size() == 0
        stack.push('123')
        assert stack.size() == 1
        stack.push('321')
        assert stack.size() == 2
        _ = stack.pop()
        assert stack.size() == 1

    def test_Stack_snapshot_is_None_when_empty(self):
        stack = classes.Stack()
        assert stack.snapshot() is None
        stack.push('a')
        stack.pop()
        assert stack.snapshot() is None

    def test_Stack_snapshot_is_an_immutable_copy(self):
        stack = classes.Stack()
        stack.push('a')
        stack.push('b')
        snapshot = stack.snapshot()
        assert snapshot == ('a', 'b')
        stack.push('c')
        assert snapshot == ('a', 'b')
        assert type(snapshot) is tuple

    def test_Stack_require_raises_StackUnderflow_with_opname(self):
        stack = classes.Stack()
        stack.push('1')
        stack.require(1, 'OP_WHATEVER')
        with self.assertRaises(errors.StackUnderflow) as e:
            stack.require(2, 'OP_WHATEVER')
        assert str(e.exception) == 'OP_WHATEVER requires 2 values on the stack'
        assert stack.snapshot() == ('1',)

    def test_Stack_peek_does_not_remove_items(self):
        stack = classes.Stack()
        stack.push('a')
        stack.push('b')
        assert stack.peek() == 'b'
        assert stack.peek(1) == 'a'
        assert len(stack) == 2
        with self.assertRaises(errors.StackUnderflow):
            stack.peek(2)

    def test_Stack_copies_signed_bytes(self):
        data = bytearray(b'signed')
        stack = classes.Stack(data)
        data[0] = 0
        assert stack.signed_bytes == b'signed'
        assert type(stack.signed_bytes) is bytes

    def test_Stack_rejects_nonbytes_signed_bytes(self):
        with self.assertRaises(TypeError):
            classes.Stack('not bytes')


class TestScript(unittest.TestCase):
    def test_Script_implements_ScriptProtocol(self):
        assert isinstance(classes.Script(), interfaces.ScriptProtocol)

    def test_Script_from_src_splits_on_whitespace(self):
        script = classes.Script.from_src('2  3\nOP_ADD\t5 OP_EQUAL')
        assert script.tokens == ('2', '3', 'OP_ADD', '5', 'OP_EQUAL')
        assert len(script) == 5
        assert list(script) == ['2', '3', 'OP_ADD', '5', 'OP_EQUAL']

    def test_Script_str_returns_source(self):
        script = classes.Script(['2', '3', 'OP_ADD'])
        assert str(script) == '2 3 OP_ADD'
        assert classes.Script.from_src(str(script)) == script

    def test_Script_addition_concatenates_tokens(self):
        unlock = classes.Script.from_src('2 3')
        lock = classes.Script.from_src('OP_ADD 5 OP_EQUAL')
        combined = unlock + lock
        assert combined.tokens == ('2', '3', 'OP_ADD', '5', 'OP_EQUAL')

        with self.assertRaises(TypeError):
            unlock + '5'

    def test_Script_rejects_nonstr_tokens(self):
        with self.assertRaises(TypeError):
            classes.Script((b'2', b'3'))


if __name__ == '__main__':
    unittest.main()
