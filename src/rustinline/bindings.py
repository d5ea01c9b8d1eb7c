"""Code generation for both sides of the FFI boundary.

`generate_rust_shims` appends `extern "C"` wrappers to the compile unit, and
`generate_python_bindings` renders the ctypes functions that call them. Both
consult the same marshalling tables, so a type is either supported on both
sides or rejected before cargo runs.
"""

import keyword
from typing import Iterable, Optional, TypedDict

from .errors import BindingGenerationError
from .signatures import FunctionSignature, format_signature


SYMBOL_PREFIX = "wrap__"
FREE_STRING_SYMBOL = "rustinline_free_string"
EXPORT_MACRO = "__rustinline_export"
LIBRARY_GLOBAL = "_lib"
MARSHAL_MODULE = "rustinline.marshal"

# Module globals of the generated bindings; wrappers look them up by name.
RESERVED_NAMES = frozenset({LIBRARY_GLOBAL, "ctypes", "take_string", "to_c_string"})


class ParamMapping(TypedDict):
    ctype: str
    ffi: str
    to_foreign: Optional[str]
    rust: str


class ReturnMapping(TypedDict):
    ctype: Optional[str]
    ffi: str
    to_host: Optional[str]
    rust: str


_NUMERIC_CTYPES = {
    "f64": "c_double",
    "f32": "c_float",
    "i8": "c_int8",
    "i16": "c_int16",
    "i32": "c_int32",
    "i64": "c_int64",
    "u8": "c_uint8",
    "u16": "c_uint16",
    "u32": "c_uint32",
    "u64": "c_uint64",
    "isize": "c_ssize_t",
    "usize": "c_size_t",
    "bool": "c_bool",
}

_C_STRING_IN = "*const libc::c_char"
_C_STRING_OUT = "*mut libc::c_char"

PARAM_TYPES: dict[str, ParamMapping] = {
    rust_type: {"ctype": ctype, "ffi": rust_type, "to_foreign": None, "rust": "{arg}"}
    for rust_type, ctype in _NUMERIC_CTYPES.items()
}
PARAM_TYPES["&str"] = {
    "ctype": "c_char_p",
    "ffi": _C_STRING_IN,
    "to_foreign": "to_c_string",
    "rust": "unsafe {{ __rustinline_str({arg}) }}",
}
PARAM_TYPES["String"] = {
    "ctype": "c_char_p",
    "ffi": _C_STRING_IN,
    "to_foreign": "to_c_string",
    "rust": "unsafe {{ __rustinline_str({arg}) }}.to_owned()",
}

RETURN_TYPES: dict[str, ReturnMapping] = {
    rust_type: {"ctype": ctype, "ffi": rust_type, "to_host": None, "rust": "{call}"}
    for rust_type, ctype in _NUMERIC_CTYPES.items()
}
for _string_type in ("&str", "String"):
    RETURN_TYPES[_string_type] = {
        "ctype": "c_void_p",
        "ffi": _C_STRING_OUT,
        "to_host": "take_string",
        "rust": "__rustinline_into_raw({call})",
    }
RETURN_TYPES["()"] = {"ctype": None, "ffi": "()", "to_host": None, "rust": "{call}"}


def mangle(name: str) -> str:
    return f"{SYMBOL_PREFIX}{name}"


def _param_mapping(function: str, name: str, rust_type: str) -> ParamMapping:
    mapping = PARAM_TYPES.get(rust_type)
    if mapping is None:
        raise BindingGenerationError(function, name, rust_type)
    return mapping


def _return_mapping(function: str, rust_type: Optional[str]) -> ReturnMapping:
    mapping = RETURN_TYPES.get(rust_type or "()")
    if mapping is None:
        raise BindingGenerationError(function, "return", rust_type or "")
    return mapping


def _check_python_name(function: str, name: str) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise BindingGenerationError(
            function,
            name,
            "",
            message=f"'{name}' in function '{function}' is not a usable Python name",
        )
    if name in RESERVED_NAMES or (name.startswith("__") and name.endswith("__")):
        raise BindingGenerationError(
            function,
            name,
            "",
            message=(
                f"'{name}' in function '{function}' clashes with a name the "
                "generated bindings use"
            ),
        )


def _ctype_expr(ctype: Optional[str]) -> str:
    return f"ctypes.{ctype}" if ctype else "None"


def _render_python_function(signature: FunctionSignature) -> list[str]:
    name = signature["name"]
    _check_python_name(name, name)
    symbol = f"{LIBRARY_GLOBAL}.{mangle(name)}"
    argtypes = []
    arg_names = []
    call_args = []
    for param in signature["params"]:
        _check_python_name(name, param["name"])
        mapping = _param_mapping(name, param["name"], param["type"])
        argtypes.append(_ctype_expr(mapping["ctype"]))
        arg_names.append(param["name"])
        if mapping["to_foreign"]:
            call_args.append(f"{mapping['to_foreign']}({param['name']})")
        else:
            call_args.append(param["name"])
    result = _return_mapping(name, signature["return_type"])

    call = f"{symbol}({', '.join(call_args)})"
    if result["ctype"] is None:
        body = call
    elif result["to_host"]:
        body = f"return {result['to_host']}({LIBRARY_GLOBAL}, {call})"
    else:
        body = f"return {call}"

    return [
        f"{symbol}.argtypes = [{', '.join(argtypes)}]",
        f"{symbol}.restype = {_ctype_expr(result['ctype'])}",
        "",
        "",
        f"def {name}({', '.join(arg_names)}):",
        f'    """{format_signature(signature)}"""',
        f"    {body}",
        "",
        "",
    ]


def generate_python_bindings(signatures: Iterable[FunctionSignature]) -> str:
    """Render a Python module defining one wrapper per exported function.

    The module expects `_lib` (the loaded ctypes library) in its globals.
    """
    signatures = list(signatures)
    lines = [
        "# Generated by rustinline. Do not edit.",
        f"# `{LIBRARY_GLOBAL}` is bound to the loaded library before execution.",
        "import ctypes",
        "",
        f"from {MARSHAL_MODULE} import take_string, to_c_string",
        "",
        f"{LIBRARY_GLOBAL}.{FREE_STRING_SYMBOL}.argtypes = [ctypes.c_void_p]",
        f"{LIBRARY_GLOBAL}.{FREE_STRING_SYMBOL}.restype = None",
        "",
        "",
    ]
    for signature in signatures:
        lines.extend(_render_python_function(signature))
    names = ", ".join(repr(signature["name"]) for signature in signatures)
    lines.append(f"__all__ = [{names}]")
    return "\n".join(lines) + "\n"


_RUST_SUPPORT = f"""
// ---- rustinline exports ----

macro_rules! {EXPORT_MACRO} {{
    ($name:ident, ($($arg:ident: $ty:ty),*) -> $ret:ty $body:block) => {{
        paste::paste! {{
            #[no_mangle]
            pub extern "C" fn [<{SYMBOL_PREFIX} $name>]($($arg: $ty),*) -> $ret $body
        }}
    }};
}}

#[allow(dead_code)]
unsafe fn __rustinline_str<'a>(ptr: *const libc::c_char) -> &'a str {{
    if ptr.is_null() {{
        return "";
    }}
    let bytes = std::ffi::CStr::from_ptr(ptr).to_bytes();
    match std::str::from_utf8(bytes) {{
        Ok(text) => text,
        // no unwinding across extern "C": keep the valid prefix
        Err(err) => std::str::from_utf8_unchecked(&bytes[..err.valid_up_to()]),
    }}
}}

#[allow(dead_code)]
fn __rustinline_into_raw<S: Into<Vec<u8>>>(value: S) -> *mut libc::c_char {{
    match std::ffi::CString::new(value) {{
        Ok(text) => text.into_raw(),
        Err(err) => {{
            // cut at the first NUL, as a C reader would
            let nul = err.nul_position();
            let mut bytes = err.into_vec();
            bytes.truncate(nul);
            unsafe {{ std::ffi::CString::from_vec_unchecked(bytes) }}.into_raw()
        }}
    }}
}}

#[no_mangle]
pub extern "C" fn {FREE_STRING_SYMBOL}(ptr: *mut libc::c_char) {{
    if !ptr.is_null() {{
        unsafe {{
            drop(std::ffi::CString::from_raw(ptr));
        }}
    }}
}}
"""


def _render_rust_shim(signature: FunctionSignature) -> str:
    name = signature["name"]
    ffi_params = []
    call_args = []
    for index, param in enumerate(signature["params"]):
        mapping = _param_mapping(name, param["name"], param["type"])
        # positional names so a parameter can never shadow the function
        arg = f"__arg{index}"
        ffi_params.append(f"{arg}: {mapping['ffi']}")
        call_args.append(mapping["rust"].format(arg=arg))
    result = _return_mapping(name, signature["return_type"])
    call = f"{name}({', '.join(call_args)})"
    body = result["rust"].format(call=call)
    return (
        f"{EXPORT_MACRO}!({name}, ({', '.join(ffi_params)}) -> {result['ffi']} {{\n"
        f"    {body}\n"
        "});\n"
    )


def generate_rust_shims(signatures: Iterable[FunctionSignature]) -> str:
    """Render the C ABI wrappers appended to the compile unit."""
    parts = [_RUST_SUPPORT]
    for signature in signatures:
        parts.append("\n" + _render_rust_shim(signature))
    return "".join(parts)
