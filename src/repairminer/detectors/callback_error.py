"""
Callback error repairs: an existing function starts passing errors to its
callback.

By convention the first parameter of an asynchronous function is its
callback, and a callback is invoked with the error as its first argument.
"""

import logging
from typing import List

from ..analysis.base import AnalysisContext, Detector
from ..ast_analysis.utilities import call_arguments
from ..models import ChangeType
from ..scope.models import Scope

logger = logging.getLogger(__name__)

NO_ERROR_KINDS = frozenset({"null", "undefined"})


class CallbackErrorDetector(Detector):
    """
    Flags inserted calls to a function's first parameter.

    The call may sit in a nested function (``fs.readFile(p, function(err) {
    cb(err); })``); it is attributed to the function whose parameter it
    resolves to. Calls passing ``null``, ``undefined`` or nothing as the
    first argument report success, not an error, and are ignored.
    """

    tag = "CALLBACK_ERROR_ADDED"

    def visit_node(self, context: AnalysisContext, node_id: int, scope: Scope) -> List[object]:
        dst = context.dst_ast
        node = dst.node(node_id)
        if node.kind != "call_expression" or node.change != ChangeType.INSERTED:
            return []

        callee = dst.field(node_id, "function")
        if callee is None or dst.kind(callee) != "identifier":
            return []
        name = dst.node(callee).value

        declaring = context.dst_scopes.resolve(scope, name)
        if declaring is None or declaring.is_script:
            return []
        if not declaring.parameters or declaring.parameters[0] != name:
            return []

        # New functions have no callback contract to repair
        if context.src_partner(declaring) is None:
            return []
        function = dst.node(declaring.node_id)

        arguments = call_arguments(dst, node_id)
        if not arguments or dst.kind(arguments[0]) in NO_ERROR_KINDS:
            return []

        return [self.alert(context, declaring.name, function.line,
                           f"callback-error newly propagated in function {declaring.name}",
                           identifier=name)]
