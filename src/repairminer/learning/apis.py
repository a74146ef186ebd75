"""
API model used to type keywords.

The model knows the JavaScript globals and a handful of Node.js core
packages. Names are looked up to decide which keyword type an identifier
gets and which API it belongs to.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from .keywords import GLOBAL_API, KeywordType


@dataclass(frozen=True)
class PackageAPI:
    """Members exported by one package (or by the global scope)."""
    name: str
    methods: FrozenSet[str] = frozenset()
    fields: FrozenSet[str] = frozenset()
    classes: FrozenSet[str] = frozenset()
    events: FrozenSet[str] = frozenset()
    constants: FrozenSet[str] = frozenset()


GLOBAL_PACKAGE = PackageAPI(
    name=GLOBAL_API,
    methods=frozenset({
        "parseInt", "parseFloat", "isNaN", "isFinite", "eval", "require",
        "setTimeout", "setInterval", "setImmediate", "clearTimeout",
        "clearInterval", "clearImmediate", "encodeURIComponent",
        "decodeURIComponent", "encodeURI", "decodeURI",
        "hasOwnProperty", "toString", "valueOf", "call", "apply", "bind",
        "push", "pop", "shift", "unshift", "slice", "splice", "concat",
        "indexOf", "lastIndexOf", "join", "split", "replace", "match", "test",
        "trim", "toLowerCase", "toUpperCase", "substring", "substr", "charAt",
        "forEach", "map", "filter", "reduce", "some", "every", "keys",
        "stringify", "parse", "then", "catch", "resolve", "reject",
        "log", "error", "warn", "info", "exit", "nextTick", "cwd",
    }),
    fields=frozenset({
        "length", "prototype", "message", "stack", "code", "constructor",
        "exports", "env", "argv", "platform",
    }),
    classes=frozenset({
        "Object", "Array", "String", "Number", "Boolean", "Date", "RegExp",
        "Math", "JSON", "Promise", "Map", "Set", "WeakMap", "Symbol",
        "Buffer", "Function",
    }),
    constants=frozenset({"NaN", "Infinity", "process", "console", "module",
                         "exports", "__dirname", "__filename", "global"}),
)

ERROR_CLASSES = frozenset({
    "Error", "TypeError", "RangeError", "SyntaxError", "ReferenceError",
    "EvalError", "URIError",
})

EVENT_METHODS = frozenset({
    "on", "once", "emit", "addListener", "removeListener",
    "removeAllListeners", "listeners", "prependListener",
})

RESERVED_LITERALS = frozenset({"null", "undefined", "true", "false", "this"})

PACKAGES: Dict[str, PackageAPI] = {
    package.name: package for package in (
        PackageAPI("fs",
                   methods=frozenset({
                       "readFile", "readFileSync", "writeFile", "writeFileSync",
                       "appendFile", "exists", "existsSync", "stat", "statSync",
                       "lstat", "mkdir", "mkdirSync", "readdir", "readdirSync",
                       "unlink", "unlinkSync", "rename", "open", "close",
                       "createReadStream", "createWriteStream", "watch",
                   }),
                   classes=frozenset({"ReadStream", "WriteStream", "Stats"}),
                   events=frozenset({"open", "close", "error", "data", "end"})),
        PackageAPI("path",
                   methods=frozenset({
                       "join", "resolve", "dirname", "basename", "extname",
                       "normalize", "relative", "isAbsolute",
                   }),
                   fields=frozenset({"sep", "delimiter"})),
        PackageAPI("http",
                   methods=frozenset({"createServer", "request", "get", "listen"}),
                   classes=frozenset({"Server", "IncomingMessage", "ServerResponse", "Agent"}),
                   events=frozenset({"request", "response", "connection", "close", "error"})),
        PackageAPI("https",
                   methods=frozenset({"createServer", "request", "get"}),
                   classes=frozenset({"Server", "Agent"})),
        PackageAPI("events",
                   classes=frozenset({"EventEmitter"})),
        PackageAPI("child_process",
                   methods=frozenset({"exec", "execSync", "execFile", "spawn", "fork"}),
                   events=frozenset({"exit", "close", "error", "message"})),
        PackageAPI("util",
                   methods=frozenset({"inherits", "format", "inspect", "promisify",
                                      "isArray", "isError"})),
        PackageAPI("url",
                   methods=frozenset({"parse", "format", "resolve"}),
                   classes=frozenset({"URL"})),
        PackageAPI("os",
                   methods=frozenset({"platform", "tmpdir", "homedir", "hostname", "cpus"}),
                   fields=frozenset({"EOL"})),
        PackageAPI("crypto",
                   methods=frozenset({"createHash", "createHmac", "randomBytes",
                                      "createCipher", "createDecipher"})),
        PackageAPI("net",
                   methods=frozenset({"createServer", "connect", "createConnection"}),
                   classes=frozenset({"Socket", "Server"}),
                   events=frozenset({"connect", "data", "end", "error", "close"})),
        PackageAPI("stream",
                   classes=frozenset({"Readable", "Writable", "Duplex", "Transform"}),
                   events=frozenset({"data", "end", "error", "finish", "close", "drain"})),
        PackageAPI("zlib",
                   methods=frozenset({"gzip", "gunzip", "deflate", "inflate", "createGzip"})),
        PackageAPI("querystring",
                   methods=frozenset({"parse", "stringify", "escape", "unescape"})),
    )
}


class APIModel:
    """Looks up names in the global API and the package APIs."""

    def __init__(self, packages: Optional[Dict[str, PackageAPI]] = None,
                 global_package: PackageAPI = GLOBAL_PACKAGE):
        self.packages = dict(PACKAGES if packages is None else packages)
        self.global_package = global_package

    def package(self, name: str) -> Optional[PackageAPI]:
        return self.packages.get(name)

    def is_package(self, name: str) -> bool:
        return name in self.packages

    def global_type(self, name: str) -> Optional[KeywordType]:
        """Keyword type of a bare global name, or None if it is not an API name."""
        if name in ERROR_CLASSES:
            return KeywordType.EXCEPTION
        if name in self.global_package.classes:
            return KeywordType.CLASS
        if name in self.global_package.constants:
            return KeywordType.CONSTANT
        if name in self.global_package.methods:
            return KeywordType.METHOD_CALL
        return None

    def member_api(self, package_name: Optional[str], member: str,
                   type_: KeywordType) -> Optional[str]:
        """
        The API a member access belongs to.

        Args:
            package_name: Package the object resolves to, if any
            member: Property name
            type_: METHOD_CALL, FIELD, CLASS or EVENT

        Returns:
            The package name, ``"global"`` for global members, or None
        """
        if package_name is not None:
            package = self.packages.get(package_name)
            if package is not None and member in _members(package, type_):
                return package.name
        if member in _members(self.global_package, type_):
            return GLOBAL_API
        if type_ == KeywordType.METHOD_CALL and member in EVENT_METHODS:
            return GLOBAL_API
        return None

    def event_api(self, package_name: Optional[str], event: str) -> Optional[str]:
        if package_name is not None:
            package = self.packages.get(package_name)
            if package is not None and event in package.events:
                return package.name
        for package in self.packages.values():
            if event in package.events:
                return GLOBAL_API
        return None


def _members(package: PackageAPI, type_: KeywordType) -> FrozenSet[str]:
    if type_ == KeywordType.METHOD_CALL:
        return package.methods
    if type_ == KeywordType.FIELD:
        return package.fields | package.constants
    if type_ == KeywordType.CLASS:
        return package.classes
    if type_ == KeywordType.EVENT:
        return package.events
    return frozenset()
