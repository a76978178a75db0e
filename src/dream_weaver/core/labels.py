"""界面文案（按故事语言）"""

from ..utils.config import Language

LABELS: dict[Language, dict[str, str]] = {
    Language.FRENCH: {
        "building_character": "Création de la fiche personnage...",
        "writing_story": "Écriture de l'histoire...",
        "drawing": "Création des illustrations...",
        "drawing_page": "Dessin de la page {current} sur {total}",
        "done": "Votre livre est prêt !",
        "generic_error": "Une erreur est survenue lors de la création de votre livre. Veuillez réessayer.",
        "subtitle": "Une histoire personnalisée créée par DreamWeaver AI",
        "page": "Page",
        "fallback_idea": "Une grande aventure pour trouver un trésor caché au fond du jardin.",
        "export_error": "Impossible de générer le PDF. Veuillez essayer l'option Imprimer.",
    },
    Language.ENGLISH: {
        "building_character": "Building the character sheet...",
        "writing_story": "Writing the story...",
        "drawing": "Drawing the illustrations...",
        "drawing_page": "Drawing page {current} of {total}",
        "done": "Your book is ready!",
        "generic_error": "Something went wrong while creating your book. Please try again.",
        "subtitle": "A personalised story created by DreamWeaver AI",
        "page": "Page",
        "fallback_idea": "A great adventure to find a treasure hidden at the bottom of the garden.",
        "export_error": "Could not generate the PDF. Please try the Print option.",
    },
    Language.CHINESE: {
        "building_character": "正在创建角色设定...",
        "writing_story": "正在撰写故事...",
        "drawing": "正在绘制插图...",
        "drawing_page": "正在绘制第 {current} 页，共 {total} 页",
        "done": "绘本已完成！",
        "generic_error": "创建绘本时出现错误，请重试。",
        "subtitle": "由 DreamWeaver AI 创作的专属故事",
        "page": "第{}页",
        "fallback_idea": "一场寻找藏在花园深处宝藏的大冒险。",
        "export_error": "无法生成PDF，请尝试打印功能。",
    },
    Language.JAPANESE: {
        "building_character": "キャラクター設定を作成中...",
        "writing_story": "物語を執筆中...",
        "drawing": "イラストを作成中...",
        "drawing_page": "{total}ページ中{current}ページ目を描いています",
        "done": "絵本が完成しました！",
        "generic_error": "絵本の作成中にエラーが発生しました。もう一度お試しください。",
        "subtitle": "DreamWeaver AI が作ったあなただけのお話",
        "page": "{}ページ",
        "fallback_idea": "庭の奥に隠された宝物を探す大冒険。",
        "export_error": "PDFを生成できませんでした。印刷をお試しください。",
    },
    Language.KOREAN: {
        "building_character": "캐릭터 시트를 만드는 중...",
        "writing_story": "이야기를 쓰는 중...",
        "drawing": "삽화를 그리는 중...",
        "drawing_page": "{total}페이지 중 {current}페이지를 그리는 중",
        "done": "그림책이 완성되었습니다!",
        "generic_error": "그림책을 만드는 중 오류가 발생했습니다. 다시 시도해 주세요.",
        "subtitle": "DreamWeaver AI가 만든 나만의 이야기",
        "page": "{}페이지",
        "fallback_idea": "정원 깊숙이 숨겨진 보물을 찾는 큰 모험.",
        "export_error": "PDF를 생성할 수 없습니다. 인쇄 기능을 사용해 주세요.",
    },
}


def get_labels(language: Language) -> dict[str, str]:
    """获取对应语言的文案，未知语言回退到法语"""
    return LABELS.get(language, LABELS[Language.FRENCH])


def page_label(language: Language, number: int) -> str:
    """格式化页码标签，例如 Page 3 或 第3页"""
    label = get_labels(language)["page"]
    if "{}" in label:
        return label.format(number)
    return f"{label} {number}"
