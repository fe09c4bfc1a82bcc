"""
TypeScript/JavaScript boundary detector.

Marks function, class, method, arrow function, interface, type alias and
enum declarations as chunk starts. Control statements such as `if (x) {`
share the call-like shape of a method header and are excluded by keyword.
"""

from typing import Dict

from .base_detector import RegexBoundaryDetector


class TsJsBoundaryDetector(RegexBoundaryDetector):
    """Declaration-style rules shared by TypeScript and JavaScript"""

    RULES: Dict[str, str] = {
        'function_decl': r'^\s*(export\s+)?(async\s+)?function\s+',
        'class_decl': r'^\s*(export\s+)?(default\s+)?class\s+',
        'method_def': r'^\s*(public|private|protected|static)?\s*(async\s+)?'
                      r'(?!(if|for|while|switch|catch|with|return|else|do)\b)\w+\s*\([^)]*\)\s*[\{:]',
        'arrow_func': r'^\s*const\s+\w+\s*=\s*(async\s+)?\([^)]*\)\s*=>',
        'interface_decl': r'^\s*interface\s+\w+',
        'type_alias': r'^\s*type\s+\w+',
        'enum_decl': r'^\s*enum\s+\w+',
    }
