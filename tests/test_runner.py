import asyncio
import json

import pytest

from bigodon import Bigodon, compile, run, VERSION
from bigodon import UnsupportedVersionError, UnknownHelperError, HelperExecutionError


@pytest.mark.asyncio
async def test_rejects_unsupported_versions():
    with pytest.raises(UnsupportedVersionError):
        await run({'type': 'TEMPLATE', 'version': -1, 'statements': []})
    with pytest.raises(UnsupportedVersionError):
        await run({'type': 'TEMPLATE', 'version': 10**9, 'statements': []})
    with pytest.raises(UnsupportedVersionError):
        await run({'type': 'TEMPLATE', 'version': 1e9, 'statements': []})


@pytest.mark.asyncio
async def test_version_is_checked_before_statements():
    # Statements that would otherwise fail to load are never looked at
    with pytest.raises(UnsupportedVersionError):
        await run({'type': 'TEMPLATE', 'version': VERSION + 1, 'statements': [
            {'type': 'MUSTACHE', 'expression': {'type': 'NOPE'}},
        ]})


@pytest.mark.asyncio
async def test_returns_text_statements():
    templ = compile('Lorem ipsum')
    assert await templ() == 'Lorem ipsum'


@pytest.mark.asyncio
async def test_ignores_comments():
    templ = compile('Lorem {{! ipsum }} dolor')
    assert await templ() == 'Lorem  dolor'


# --- Mustaches ---

@pytest.mark.asyncio
async def test_literal_expressions():
    templ = compile('Hello, {{ "George" }}!')
    assert await templ() == 'Hello, George!'


@pytest.mark.asyncio
async def test_simple_path_expressions():
    templ = compile('Hello, {{ name }}!')
    assert await templ({'name': 'George'}) == 'Hello, George!'
    assert await templ() == 'Hello, !'
    assert await templ({}) == 'Hello, !'
    assert await templ({'name': None}) == 'Hello, !'
    assert await templ({'name': 5}) == 'Hello, 5!'
    assert await templ({'name': False}) == 'Hello, false!'
    assert await templ({'name': True}) == 'Hello, true!'
    assert await templ({'name': 2.0}) == 'Hello, 2!'
    assert await templ({'name': 2.5}) == 'Hello, 2.5!'


@pytest.mark.asyncio
async def test_deep_path_expressions():
    templ = compile('Hello, {{ name.first }} {{ name.last }}!')
    assert await templ({'name': {'first': 'George', 'last': 'Schmidt'}}) == 'Hello, George Schmidt!'
    assert await templ() == 'Hello,  !'
    assert await templ({}) == 'Hello,  !'
    assert await templ({'name': None}) == 'Hello,  !'
    assert await templ({'name': 5}) == 'Hello,  !'
    assert await templ({'name': False}) == 'Hello,  !'


@pytest.mark.asyncio
async def test_objects_do_not_interpolate():
    templ = compile('[{{ obj }}][{{ items }}]')
    assert await templ({'obj': {'a': 1}, 'items': [1, 2]}) == '[][]'


@pytest.mark.asyncio
async def test_ignores_unsafe_keys():
    templ = compile('Hello, {{ name.constructor }} {{ name.__proto__ }}!')
    assert await templ({'name': {'__proto__': 'foo', 'constructor': 'bar'}}) == 'Hello,  !'


@pytest.mark.asyncio
async def test_unsafe_keys_are_checked_at_every_segment():
    templ = compile('{{ constructor.name }}|{{ a.__proto__.b }}')
    ctx = {'constructor': {'name': 'x'}, 'a': {'__proto__': {'b': 'y'}}}
    assert await templ(ctx) == '|'


@pytest.mark.asyncio
async def test_ignores_unknown_statements():
    result = await run({
        'type': 'TEMPLATE',
        'version': VERSION,
        'statements': [
            {'type': 'TEXT', 'value': 'foo'},
            {'type': 'ABLUEBLUE', 'value': 'noope'},
            {'type': 'TEXT', 'value': 'bar'},
        ],
    })
    assert result == 'foobar'


@pytest.mark.asyncio
async def test_context_is_not_mutated():
    ctx = {'val': [{'foo': 'a'}, {'foo': 'b'}], 'foo': 'x'}
    snapshot = json.loads(json.dumps(ctx))
    templ = compile('{{#val}}{{foo}}{{/val}}{{foo}}')
    assert await templ(ctx) == 'abx'
    assert ctx == snapshot


# --- Blocks ---

@pytest.mark.asyncio
async def test_block_with_truthy_value():
    templ = compile('{{#val}}foo{{/val}}')
    assert await templ({'val': True}) == 'foo'
    assert await templ({'val': 'a'}) == 'foo'
    assert await templ({'val': {}}) == 'foo'
    assert await templ({'val': 1}) == 'foo'


@pytest.mark.asyncio
async def test_block_with_falsy_value():
    templ = compile('{{#val}}foo{{/val}}')
    assert await templ({'val': False}) == ''
    assert await templ({'val': None}) == ''
    assert await templ({'val': ''}) == ''
    assert await templ({'val': []}) == ''
    assert await templ({'val': 0}) == ''
    assert await templ({'val': float('nan')}) == ''
    assert await templ() == ''


@pytest.mark.asyncio
async def test_else_block_with_falsy_value():
    templ = compile('{{#val}}foo{{else}}bar{{/val}}')
    assert await templ({'val': False}) == 'bar'
    assert await templ({'val': True}) == 'foo'


@pytest.mark.asyncio
async def test_else_block_with_arrays():
    templ = compile('{{#val}}foo{{else}}bar{{/val}}')
    assert await templ({'val': []}) == 'bar'
    assert await templ({'val': [1]}) == 'foo'


@pytest.mark.asyncio
async def test_block_runs_once_per_array_item():
    templ = compile('{{#val}}foo{{/val}}')
    assert await templ({'val': [1, 2, 3]}) == 'foofoofoo'


@pytest.mark.asyncio
async def test_block_passes_parent_context_for_non_object_value():
    templ = compile('{{#val}}{{foo}}{{/val}}')
    assert await templ({'val': True, 'foo': 'bar'}) == 'bar'
    assert await templ({'val': 'a', 'foo': 'bar'}) == 'bar'
    assert await templ({'val': 1, 'foo': 'bar'}) == 'bar'


@pytest.mark.asyncio
async def test_block_passes_object_as_context():
    templ = compile('{{#val}}{{foo}}{{/val}}')
    assert await templ({'val': {'foo': 'bar'}, 'foo': 'wrong'}) == 'bar'


@pytest.mark.asyncio
async def test_block_passes_array_object_items_as_context():
    templ = compile('{{#val}}{{foo}}{{/val}}')
    assert await templ({'val': [{'foo': 'bar'}, {'foo': 'baz'}], 'foo': 'wrong'}) == 'barbaz'


@pytest.mark.asyncio
async def test_block_passes_parent_context_for_non_object_items():
    templ = compile('{{#val}}{{foo}}{{/val}}')
    assert await templ({'val': [True, 'a', 1, None, []], 'foo': 'bar'}) == 'barbarbarbarbar'


@pytest.mark.asyncio
async def test_else_block_gets_parent_context():
    templ = compile('{{#val}}nah{{else}}{{foo}}{{/val}}')
    assert await templ({'val': False, 'foo': 'bar'}) == 'bar'


@pytest.mark.asyncio
async def test_negated_blocks():
    templ = compile('{{^val}}foo{{/val}}')
    assert await templ({'val': False}) == 'foo'
    assert await templ({'val': ''}) == 'foo'
    assert await templ({'val': []}) == 'foo'
    assert await templ({'val': True}) == ''
    assert await templ({'val': 'a'}) == ''


@pytest.mark.asyncio
async def test_else_of_negated_blocks():
    templ = compile('{{^val}}foo{{else}}bar{{/val}}')
    assert await templ({'val': True}) == 'bar'


@pytest.mark.asyncio
async def test_else_of_negated_blocks_gets_parent_context():
    templ = compile('{{^val}}foo{{else}}{{foo}}{{/val}}')
    assert await templ({'val': {'foo': 'wrong'}, 'foo': 'bar'}) == 'bar'


@pytest.mark.asyncio
async def test_negated_blocks_always_get_parent_context():
    templ = compile('{{^val}}{{foo}}{{/val}}')
    assert await templ({'val': False, 'foo': 'bar'}) == 'bar'


@pytest.mark.asyncio
async def test_helper_returns_are_section_values():
    bigodon = Bigodon()

    async def foo(val):
        await asyncio.sleep(0.05)
        return {'val': val}

    bigodon.add_helper('foo', foo)
    templ = bigodon.compile('{{#foo "bar"}}{{val}}{{/foo}}')
    assert await templ() == 'bar'


@pytest.mark.asyncio
async def test_nests_correctly():
    templ = compile('{{#a}}{{#b}}{{c}}{{/b}}{{/a}}')
    assert await templ({'a': {'b': {'c': 'foo'}}}) == 'foo'


@pytest.mark.asyncio
async def test_unknown_helper():
    templ = compile('{{ nope "x" }}')
    with pytest.raises(UnknownHelperError):
        await templ()


@pytest.mark.asyncio
async def test_complex_template():
    bigodon = Bigodon(load_builtins=True)
    templ = bigodon.compile('''
{
    "id": {{id}},
    "code": "{{upper code}}",
    {{#name}}
    "name": "{{name}}",
    {{/name}}
    "items": [
        {{#items}}
          "{{name}}"{{^isLast}},{{/isLast}}
        {{/items}}
    ]
}
            ''')
    a = await templ({
        'id': 1,
        'code': 'foo',
        'name': 'bar',
        'items': [{'name': 'baz'}, {'name': 'qux', 'isLast': True}],
    })
    assert json.loads(a) == {
        'id': 1,
        'code': 'FOO',
        'name': 'bar',
        'items': ['baz', 'qux'],
    }

    b = await templ({'id': 1, 'code': 'foo', 'items': []})
    assert json.loads(b) == {'id': 1, 'code': 'FOO', 'items': []}


@pytest.mark.asyncio
async def test_concurrent_runs_share_one_tree():
    bigodon = Bigodon()

    async def slow(value, delay):
        await asyncio.sleep(float(delay))
        return value

    bigodon.add_helper('slow', slow)
    templ = bigodon.compile('{{#items}}[{{slow name "0.01"}}]{{/items}}')
    results = await asyncio.gather(
        templ({'items': [{'name': 'a'}, {'name': 'b'}]}),
        templ({'items': [{'name': 'c'}]}),
    )
    assert results == ['[a][b]', '[c]']


@pytest.mark.asyncio
async def test_output_order_does_not_depend_on_helper_timing():
    bigodon = Bigodon()

    async def wait(value, delay):
        await asyncio.sleep(float(delay))
        return value

    bigodon.add_helper('wait', wait)
    templ = bigodon.compile('{{wait "1" "0.05"}}{{wait "2" "0"}}{{wait "3" "0.02"}}')
    assert await templ() == '123'


@pytest.mark.asyncio
async def test_helper_failures_abort_the_run():
    bigodon = Bigodon()

    def boom(*args):
        raise RuntimeError("kaput")

    bigodon.add_helper('boom', boom)
    templ = bigodon.compile('before {{boom "x"}} after')
    with pytest.raises(HelperExecutionError) as excinfo:
        await templ()
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert excinfo.value.name == 'boom'
