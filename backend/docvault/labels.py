# Overview: Printed label tables for generated documents, keyed by language.

from __future__ import annotations

from .validation import normalize_language

COMPANY = {
    "companyNameAr": "شركة أوميغا للصناعات الهندسية",
    "companyNameEn": "OMEGA ENGINEERING INDUSTRIES CO.",
    "tagline": "تصميم – تصنيع – تركيب",
    "taglineEn": "DESIGN - FABRICATION - INSTALLATION",
    "country": "JORDAN",
    "tel": "Tel: +96264161060 Fax: +96264162060",
    "website": "https://www.omega-jordan.com",
}

LABELS: dict[str, dict[str, str]] = {
    "ar": {
        # titles
        "purchaseOrder": "طلب شراء",
        "materialRequest": "طلب مواد داخلي",
        "costingSheet": "كشف تكاليف",
        "receipt": "إشعار تسليم",
        "rfq": "طلب تسعير مواد",
        # document info
        "number": "رقم الوثيقة",
        "date": "التاريخ",
        "revNo": "REV. No",
        # blocks
        "supplierInfo": "معلومات المورد",
        "receiverInfo": "معلومات المستلم",
        "requestInfo": "معلومات الطلب",
        "projectInfo": "معلومات المشروع",
        "recipientInfo": "معلومات المستلم",
        # fields
        "supplierName": "اسم المورد",
        "supplierAddress": "عنوان المورد",
        "supplierPhone": "هاتف المورد",
        "receiverName": "اسم المستلم",
        "receiverCity": "مدينة المستلم",
        "receiverAddress": "عنوان المستلم",
        "receiverPhone": "هاتف المستلم",
        "section": "القسم",
        "project": "المشروع",
        "requestPriority": "أولوية الطلب",
        "requestReason": "سبب الطلب",
        "client": "العميل",
        "profitPercentage": "نسبة الربح",
        "to": "إلى",
        "attention": "عناية",
        "address": "العنوان",
        "workLocation": "موقع العمل",
        "projectCode": "رمز المشروع",
        "requester": "مقدم الطلب",
        "production": "الإنتاج",
        "urgent": "عاجل",
        "yes": "نعم",
        "no": "لا",
        # items
        "items": "البنود",
        "itemNo": "م",
        "description": "الوصف",
        "unit": "الوحدة",
        "quantity": "الكمية",
        "unitPrice": "سعر الوحدة",
        "totalPrice": "الإجمالي",
        "requiredDate": "مطلوب بتاريخ",
        "priority": "الأولوية",
        "element": "العناصر",
        "jobNo": "رقم العمل",
        "taskNo": "رقم المهمة",
        "estimatedUnitPrice": "السعر التقديري",
        # totals
        "subtotal": "المجموع الفرعي",
        "tax": "ضريبة المبيعات",
        "grandTotal": "المبلغ الإجمالي",
        # notes
        "notes": "ملاحظات",
        "additionalNotes": "ملاحظات إضافية",
        "additionalText": "معلومات إضافية",
        # signatures
        "signatures": "التواقيع",
        "purchaseManager": "مدير المشتريات",
        "productionManager": "مدير الإنتاج",
        "accountant": "المحاسب",
        "storeKeeper": "أمين المستودع",
        "preparedBy": "معد بواسطة",
        "reviewedBy": "راجعه",
        "approvedBy": "اعتمده",
        "deliveredBy": "المسلّم",
        "receivedBy": "توقيع المستلم",
    },
    "en": {
        "purchaseOrder": "Purchase Order",
        "materialRequest": "Internal Material Request",
        "costingSheet": "Costing Sheet",
        "receipt": "Delivery Notice",
        "rfq": "Request For Quotation",
        "number": "Document No",
        "date": "Date",
        "revNo": "REV. No",
        "supplierInfo": "Supplier Information",
        "receiverInfo": "Receiver Information",
        "requestInfo": "Request Information",
        "projectInfo": "Project Information",
        "recipientInfo": "Recipient Information",
        "supplierName": "Supplier Name",
        "supplierAddress": "Supplier Address",
        "supplierPhone": "Supplier Phone",
        "receiverName": "Receiver Name",
        "receiverCity": "Receiver City",
        "receiverAddress": "Receiver Address",
        "receiverPhone": "Receiver Phone",
        "section": "Section",
        "project": "Project",
        "requestPriority": "Request Priority",
        "requestReason": "Request Reason",
        "client": "Client",
        "profitPercentage": "Profit Percentage",
        "to": "To",
        "attention": "Attention",
        "address": "Address",
        "workLocation": "Work Location",
        "projectCode": "Project Code",
        "requester": "Requester",
        "production": "Production",
        "urgent": "Urgent",
        "yes": "Yes",
        "no": "No",
        "items": "Items",
        "itemNo": "#",
        "description": "Description",
        "unit": "Unit",
        "quantity": "Quantity",
        "unitPrice": "Unit Price",
        "totalPrice": "Total",
        "requiredDate": "Required Date",
        "priority": "Priority",
        "element": "Elements",
        "jobNo": "Job No.",
        "taskNo": "Task No.",
        "estimatedUnitPrice": "Est. Unit Price",
        "subtotal": "Subtotal",
        "tax": "Sales Tax",
        "grandTotal": "Grand Total",
        "notes": "Notes",
        "additionalNotes": "Additional Notes",
        "additionalText": "Additional Information",
        "signatures": "Signatures",
        "purchaseManager": "Purchase Manager",
        "productionManager": "Production Manager",
        "accountant": "Accountant",
        "storeKeeper": "Warehouse Keeper",
        "preparedBy": "Prepared By",
        "reviewedBy": "Reviewed By",
        "approvedBy": "Approved By",
        "deliveredBy": "Delivered By",
        "receivedBy": "Receiver Signature",
    },
}

# Stamped onto every page; the standard PDF fonts only cover Latin text.
STAMP_CAPTIONS = {
    "issueDate": "DATE OF ISSUE",
    "page": "Page {current} of {total}",
}


def labels_for(language: str) -> dict[str, str]:
    """Full label table for `language` ("ar"/"en", or "rtl"/"ltr"), company block included."""
    table = dict(COMPANY)
    table.update(LABELS[normalize_language(language)])
    return table
