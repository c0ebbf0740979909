import io

from stringprops import codec
from stringprops.settings import Settings


def round_trip(mapping, binary):
    if binary:
        out = io.BytesIO()
        codec.store(mapping, out)
        return codec.load(io.BytesIO(out.getvalue()), {}), out.getvalue()
    out = io.StringIO()
    codec.store(mapping, out)
    return codec.load(io.StringIO(out.getvalue()), {}), out.getvalue()


def quiet_settings(eval_disabled=False):
    return Settings(source="unused.properties", eval_disabled=eval_disabled)
