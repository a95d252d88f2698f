"""Static UI strings, document labels and user-facing error messages.

Three tables keyed by language code:

- TRANSLATIONS: the strings the web client shows (served by /api/i18n/<lang>)
- DOCUMENT_LABELS: headings used by the printable product/order documents
- MESSAGES: error messages keyed by ``CatalogError.code``
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .catalog.constants import DEFAULT_LANGUAGE, RTL_LANGUAGES


TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "ar": {
        # Navigation
        "dashboard": "لوحة التحكم",
        "upload": "رفع صورة",
        "products": "المنتجات",
        "orders": "الطلبات",
        "settings": "الإعدادات",
        # Upload page
        "uploadTitle": "رفع صور المنتجات",
        "uploadSubtitle": "قم برفع صور المنتجات وسيقوم الذكاء الاصطناعي بتحليلها وإنشاء وصف كامل",
        "dragDrop": "اسحب الصور هنا أو انقر للاختيار",
        "browseFiles": "استعراض الملفات",
        "supportedFormats": "يدعم: JPG، PNG حتى 10MB",
        "analyzing": "جاري التحليل...",
        # Products page
        "productsTitle": "مكتبة المنتجات",
        "noProducts": "لا توجد منتجات بعد. قم برفع صور لبدء التحليل.",
        "productName": "اسم المنتج",
        "description": "الوصف",
        "price": "السعر",
        "category": "الفئة",
        "actions": "الإجراءات",
        "edit": "تعديل",
        "delete": "حذف",
        "viewDetails": "عرض التفاصيل",
        "generatePdf": "تحميل PDF",
        "copyScript": "نسخ السكربت",
        # Orders page
        "ordersTitle": "إدارة الطلبات",
        "noOrders": "لا توجد طلبات بعد",
        "newOrder": "طلب جديد",
        "customerName": "اسم العميل",
        "customerPhone": "رقم الهاتف",
        "customerAddress": "العنوان",
        "customerCity": "المدينة",
        "notes": "ملاحظات",
        "quantity": "الكمية",
        "status": "الحالة",
        "pending": "قيد الانتظار",
        "confirmed": "مؤكد",
        "cancelled": "ملغي",
        "delivered": "تم التوصيل",
        "confirmationScript": "سكربت التأكيد",
        "selectProduct": "اختر المنتج",
        "createOrder": "إنشاء الطلب",
        "orderCreated": "تم إنشاء الطلب بنجاح",
        # Common
        "save": "حفظ",
        "cancel": "إلغاء",
        "search": "بحث",
        "filter": "تصفية",
        "export": "تصدير",
        "loading": "جاري التحميل...",
        "error": "حدث خطأ",
        "success": "تم بنجاح",
        "arabic": "العربية",
        "english": "English",
        "french": "Français",
        "language": "اللغة",
        "date": "التاريخ",
        "total": "المجموع",
        # Documents
        "downloadPdf": "تحميل PDF",
        "productDetails": "تفاصيل المنتج",
        "orderDetails": "تفاصيل الطلب",
    },
    "en": {
        "dashboard": "Dashboard",
        "upload": "Upload",
        "products": "Products",
        "orders": "Orders",
        "settings": "Settings",
        "uploadTitle": "Upload Product Photos",
        "uploadSubtitle": "Upload product images and AI will analyze them to generate complete descriptions",
        "dragDrop": "Drag photos here or click to browse",
        "browseFiles": "Browse Files",
        "supportedFormats": "Supports: JPG, PNG up to 10MB",
        "analyzing": "Analyzing...",
        "productsTitle": "Product Library",
        "noProducts": "No products yet. Upload images to start analyzing.",
        "productName": "Product Name",
        "description": "Description",
        "price": "Price",
        "category": "Category",
        "actions": "Actions",
        "edit": "Edit",
        "delete": "Delete",
        "viewDetails": "View Details",
        "generatePdf": "Download PDF",
        "copyScript": "Copy Script",
        "ordersTitle": "Order Management",
        "noOrders": "No orders yet",
        "newOrder": "New Order",
        "customerName": "Customer Name",
        "customerPhone": "Phone Number",
        "customerAddress": "Address",
        "customerCity": "City",
        "notes": "Notes",
        "quantity": "Quantity",
        "status": "Status",
        "pending": "Pending",
        "confirmed": "Confirmed",
        "cancelled": "Cancelled",
        "delivered": "Delivered",
        "confirmationScript": "Confirmation Script",
        "selectProduct": "Select Product",
        "createOrder": "Create Order",
        "orderCreated": "Order created successfully",
        "save": "Save",
        "cancel": "Cancel",
        "search": "Search",
        "filter": "Filter",
        "export": "Export",
        "loading": "Loading...",
        "error": "An error occurred",
        "success": "Success",
        "arabic": "العربية",
        "english": "English",
        "french": "Français",
        "language": "Language",
        "date": "Date",
        "total": "Total",
        "downloadPdf": "Download PDF",
        "productDetails": "Product Details",
        "orderDetails": "Order Details",
    },
    "fr": {
        "dashboard": "Tableau de bord",
        "upload": "Télécharger",
        "products": "Produits",
        "orders": "Commandes",
        "settings": "Paramètres",
        "uploadTitle": "Télécharger des photos de produits",
        "uploadSubtitle": "Téléchargez des images de produits et l'IA les analysera pour générer des descriptions complètes",
        "dragDrop": "Glissez les photos ici ou cliquez pour parcourir",
        "browseFiles": "Parcourir les fichiers",
        "supportedFormats": "Formats: JPG, PNG jusqu'à 10MB",
        "analyzing": "Analyse en cours...",
        "productsTitle": "Bibliothèque de produits",
        "noProducts": "Pas encore de produits. Téléchargez des images pour commencer l'analyse.",
        "productName": "Nom du produit",
        "description": "Description",
        "price": "Prix",
        "category": "Catégorie",
        "actions": "Actions",
        "edit": "Modifier",
        "delete": "Supprimer",
        "viewDetails": "Voir les détails",
        "generatePdf": "Télécharger PDF",
        "copyScript": "Copier le script",
        "ordersTitle": "Gestion des commandes",
        "noOrders": "Pas encore de commandes",
        "newOrder": "Nouvelle commande",
        "customerName": "Nom du client",
        "customerPhone": "Numéro de téléphone",
        "customerAddress": "Adresse",
        "customerCity": "Ville",
        "notes": "Notes",
        "quantity": "Quantité",
        "status": "Statut",
        "pending": "En attente",
        "confirmed": "Confirmé",
        "cancelled": "Annulé",
        "delivered": "Livré",
        "confirmationScript": "Script de confirmation",
        "selectProduct": "Sélectionner un produit",
        "createOrder": "Créer la commande",
        "orderCreated": "Commande créée avec succès",
        "save": "Enregistrer",
        "cancel": "Annuler",
        "search": "Rechercher",
        "filter": "Filtrer",
        "export": "Exporter",
        "loading": "Chargement...",
        "error": "Une erreur s'est produite",
        "success": "Succès",
        "arabic": "العربية",
        "english": "English",
        "french": "Français",
        "language": "Langue",
        "date": "Date",
        "total": "Total",
        "downloadPdf": "Télécharger PDF",
        "productDetails": "Détails du produit",
        "orderDetails": "Détails de la commande",
    },
}


DOCUMENT_LABELS: Dict[str, Dict[str, Any]] = {
    "ar": {
        "product": "تفاصيل المنتج",
        "order": "تفاصيل الطلب",
        "name": "الاسم",
        "price": "السعر",
        "category": "الفئة",
        "description": "الوصف",
        "benefits": "الفوائد",
        "features": "الميزات",
        "customer": "اسم العميل",
        "phone": "رقم الهاتف",
        "city": "المدينة",
        "address": "العنوان",
        "quantity": "الكمية",
        "status": "الحالة",
        "product_heading": "المنتج",
        "date": "التاريخ",
        "script": "سكربت التأكيد",
        "statuses": {"pending": "قيد الانتظار", "confirmed": "مؤكد", "cancelled": "ملغي", "delivered": "تم التوصيل"},
    },
    "en": {
        "product": "Product Details",
        "order": "Order Details",
        "name": "Name",
        "price": "Price",
        "category": "Category",
        "description": "Description",
        "benefits": "Benefits",
        "features": "Features",
        "customer": "Customer Name",
        "phone": "Phone Number",
        "city": "City",
        "address": "Address",
        "quantity": "Quantity",
        "status": "Status",
        "product_heading": "Product",
        "date": "Date",
        "script": "Confirmation Script",
        "statuses": {"pending": "Pending", "confirmed": "Confirmed", "cancelled": "Cancelled", "delivered": "Delivered"},
    },
    "fr": {
        "product": "Détails du Produit",
        "order": "Détails de la Commande",
        "name": "Nom",
        "price": "Prix",
        "category": "Catégorie",
        "description": "Description",
        "benefits": "Avantages",
        "features": "Caractéristiques",
        "customer": "Nom du Client",
        "phone": "Téléphone",
        "city": "Ville",
        "address": "Adresse",
        "quantity": "Quantité",
        "status": "Statut",
        "product_heading": "Produit",
        "date": "Date",
        "script": "Script de Confirmation",
        "statuses": {"pending": "En attente", "confirmed": "Confirmé", "cancelled": "Annulé", "delivered": "Livré"},
    },
}


MESSAGES: Dict[str, Dict[str, str]] = {
    "product_not_found": {
        "ar": "المنتج غير موجود",
        "en": "Product not found",
        "fr": "Produit introuvable",
    },
    "order_not_found": {
        "ar": "الطلب غير موجود",
        "en": "Order not found",
        "fr": "Commande introuvable",
    },
    "no_image": {
        "ar": "لم يتم إرسال أي صورة",
        "en": "No image file provided",
        "fr": "Aucune image fournie",
    },
    "not_an_image": {
        "ar": "يسمح فقط بملفات الصور",
        "en": "Only image files are allowed",
        "fr": "Seules les images sont acceptées",
    },
    "image_too_large": {
        "ar": "حجم الصورة يتجاوز {limit_mb} ميغابايت",
        "en": "Image exceeds the {limit_mb} MB limit",
        "fr": "L'image dépasse la limite de {limit_mb} Mo",
    },
    "missing_fields": {
        "ar": "حقول مطلوبة مفقودة: {fields}",
        "en": "Missing required fields: {fields}",
        "fr": "Champs obligatoires manquants : {fields}",
    },
    "invalid_language": {
        "ar": "لغة غير مدعومة: {value}",
        "en": "Unsupported language: {value}",
        "fr": "Langue non prise en charge : {value}",
    },
    "question_required": {
        "ar": "السؤال مطلوب",
        "en": "Question is required",
        "fr": "La question est obligatoire",
    },
    "prompt_required": {
        "ar": "وصف الصورة مطلوب",
        "en": "Prompt is required",
        "fr": "La description de l'image est obligatoire",
    },
    "marketing_data_missing": {
        "ar": "بيانات المنشور الإعلاني ناقصة",
        "en": "Missing marketing post data",
        "fr": "Données de la publication incomplètes",
    },
    "analysis_empty": {
        "ar": "لم أتمكن من تحليل الصورة. تأكد من وضوح الصورة وحاول مرة أخرى.",
        "en": "The image could not be analyzed. Make sure it is clear and try again.",
        "fr": "Impossible d'analyser l'image. Vérifiez qu'elle est nette et réessayez.",
    },
    "analysis_unparseable": {
        "ar": "عذراً، لم تتمكن الخدمة من تحليل الصورة بشكل صحيح. حاول صورة أخرى.",
        "en": "Sorry, the service could not analyze the image correctly. Try another image.",
        "fr": "Désolé, le service n'a pas pu analyser l'image correctement. Essayez une autre image.",
    },
    "marketing_empty": {
        "ar": "لم أتمكن من توليد المنشور الإعلاني",
        "en": "The marketing post could not be generated",
        "fr": "Impossible de générer la publication",
    },
    "marketing_unparseable": {
        "ar": "خطأ في صيغة المنشور الإعلاني",
        "en": "The marketing post came back in an unexpected format",
        "fr": "La publication générée a un format inattendu",
    },
    "image_failed": {
        "ar": "فشل توليد الصورة",
        "en": "Failed to generate image",
        "fr": "Échec de la génération de l'image",
    },
    "upstream_unavailable": {
        "ar": "خدمة الذكاء الاصطناعي غير متاحة حالياً، حاول لاحقاً",
        "en": "The AI service is unavailable, please try again later",
        "fr": "Le service d'IA est indisponible, réessayez plus tard",
    },
    "missing_api_key": {
        "ar": "مفتاح OPENAI_API_KEY غير مضبوط",
        "en": "OPENAI_API_KEY environment variable is not set",
        "fr": "La variable d'environnement OPENAI_API_KEY n'est pas définie",
    },
}


def is_rtl(language: str) -> bool:
    return language in RTL_LANGUAGES


def translate(key: str, language: str) -> str:
    table = TRANSLATIONS.get(language) or TRANSLATIONS[DEFAULT_LANGUAGE]
    if key in table:
        return table[key]
    return TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)


def message(code: str, language: str, /, fallback: Optional[str] = None, **params: Any) -> str:
    """Localized message for an error code.

    Unknown codes, or templates whose placeholders are not all supplied,
    return ``fallback`` (the code itself when no fallback is given).
    """
    variants = MESSAGES.get(code)
    if not variants:
        return fallback or code
    template = variants.get(language) or variants[DEFAULT_LANGUAGE]
    try:
        return template.format(**params)
    except (KeyError, IndexError, ValueError):
        return fallback or code
