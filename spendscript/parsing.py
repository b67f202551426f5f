from .errors import yert


def get_symbols(script: str) -> list[str]:
    """Split the script source into symbols on any run of whitespace.
        Raises ScriptSyntaxError if the script is not a str.
    """
    yert(type(script) is str, 'script source must be str')
    return script.split()

def tokens_to_src(tokens) -> str:
    """Join symbols back into source text separated by single spaces."""
    tokens = list(tokens)
    for token in tokens:
        yert(type(token) is str, 'each symbol must be str')
        yert(len(token) > 0 and len(token.split()) == 1,
             f'symbol {token!r} cannot be represented in source text')
    return ' '.join(tokens)
